"""
Authorization checks for agent-owned resources.

Authentication happens upstream: the identity provider issues the token and
``hawala.api.deps`` turns it into a :class:`Principal`. Here we only decide
whether that principal may act for a given agent.
"""

import enum
import uuid
from dataclasses import dataclass

from hawala.exceptions import Unauthorized
from hawala.models.agent import Agent


class Role(str, enum.Enum):
    ADMIN = "ADMIN"
    AGENT = "AGENT"
    USER = "USER"


@dataclass(frozen=True)
class Principal:
    """The authenticated caller as asserted by the identity provider."""
    user_id: str
    role: Role
    agent_id: uuid.UUID | None = None

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN


def ensure_can_act_for(principal: Principal, agent_id: uuid.UUID) -> None:
    """Allow admins, or the agent principal that owns *agent_id*."""
    if principal.is_admin:
        return
    if principal.role == Role.AGENT and principal.agent_id == agent_id:
        return
    raise Unauthorized("You do not have access to this agent's resources")


def ensure_agent_can_transact(agent: Agent) -> None:
    """Only approved, active agents may publish rates or record transactions."""
    if not agent.can_transact:
        raise Unauthorized(
            f"Agent is not approved or inactive (status={agent.status.value})"
        )
