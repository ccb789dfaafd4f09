"""
Development data seeder — agents, rates, and a few transfers.

Usage:
    python scripts/seed_data.py

Creates:
  - 4 agents (3 approved, 1 pending approval)
  - USD/AFN, EUR/AFN and AFN/USD rates for each approved agent
  - 6 transfers recorded through the ledger, walked to various statuses

Idempotent: agents are matched on business name; transfers are only
created when the ledger is empty.
"""

import asyncio
from decimal import Decimal

from sqlalchemy import func, select

from hawala.core.authz import Principal, Role
from hawala.database import session_factory
from hawala.models.agent import Agent, AgentStatus
from hawala.models.rate import RateSide
from hawala.models.transaction import Transaction, TransactionStatus
from hawala.services.fee_calculator import FeePolicy
from hawala.services.ledger import TransactionLedger, TransactionRequest
from hawala.services.rate_catalog import RateCatalog

SEED_ADMIN = Principal(user_id="seed-script", role=Role.ADMIN)

# ---------------------------------------------------------------------------
# Agents
# ---------------------------------------------------------------------------

SAMPLE_AGENTS: list[dict] = [
    {
        "business_name": "Kabul Star Exchange",
        "business_phone": "+93700100200",
        "business_address": "Shahr-e Naw, Kabul",
        "city": "Kabul",
        "status": AgentStatus.APPROVED,
    },
    {
        "business_name": "Herat Sarafi",
        "business_phone": "+93799200300",
        "business_address": "Chowk-e Gulha, Herat",
        "city": "Herat",
        "status": AgentStatus.APPROVED,
    },
    {
        "business_name": "Mazar Money Transfer",
        "business_phone": "+93788300400",
        "business_address": "Blue Mosque Road, Mazar-i-Sharif",
        "city": "Mazar-i-Sharif",
        "status": AgentStatus.APPROVED,
    },
    {
        "business_name": "Kandahar Trust Exchange",
        "business_phone": "+93777400500",
        "business_address": "Shahidan Square, Kandahar",
        "city": "Kandahar",
        "status": AgentStatus.PENDING,
    },
]

# (from, to, buy, sell) per approved agent, slightly spread between agents
SAMPLE_RATES: list[tuple[str, str, Decimal, Decimal]] = [
    ("USD", "AFN", Decimal("70.50"), Decimal("70.80")),
    ("EUR", "AFN", Decimal("76.20"), Decimal("76.65")),
    ("AFN", "USD", Decimal("0.014100"), Decimal("0.014190")),
]

SAMPLE_TRANSFERS: list[dict] = [
    {"sender": "Ahmad Karimi", "receiver": "Farid Noori", "city": "Herat",
     "amount": Decimal("100"), "target": TransactionStatus.PENDING},
    {"sender": "Zahra Hosseini", "receiver": "Maryam Rahimi", "city": "Kabul",
     "amount": Decimal("250"), "target": TransactionStatus.COMPLETED},
    {"sender": "Rahim Sultani", "receiver": "Nadia Azizi", "city": "Mazar-i-Sharif",
     "amount": Decimal("1200"), "target": TransactionStatus.WITHDRAWN},
    {"sender": "Sami Ahmadzai", "receiver": "Laila Haidari", "city": "Kandahar",
     "amount": Decimal("75.50"), "target": TransactionStatus.CANCELLED},
    {"sender": "Omid Jalali", "receiver": "Hamid Wardak", "city": "Jalalabad",
     "amount": Decimal("500"), "target": TransactionStatus.COMPLETED},
    {"sender": "Parwana Stanekzai", "receiver": "Yusuf Barakzai", "city": "Kabul",
     "amount": Decimal("40"), "target": TransactionStatus.PENDING},
]

# Shortest path from PENDING to each status
PATHS: dict[TransactionStatus, list[TransactionStatus]] = {
    TransactionStatus.PENDING: [],
    TransactionStatus.COMPLETED: [TransactionStatus.COMPLETED],
    TransactionStatus.WITHDRAWN: [TransactionStatus.COMPLETED, TransactionStatus.WITHDRAWN],
    TransactionStatus.CANCELLED: [TransactionStatus.CANCELLED],
}


async def seed_agents() -> list[Agent]:
    async with session_factory() as session:
        agents: list[Agent] = []
        created = 0
        for data in SAMPLE_AGENTS:
            existing = (
                await session.execute(
                    select(Agent).where(Agent.business_name == data["business_name"])
                )
            ).scalar_one_or_none()
            if existing is not None:
                agents.append(existing)
                continue
            agent = Agent(**data)
            session.add(agent)
            agents.append(agent)
            created += 1
        await session.flush()

        catalog = RateCatalog(session)
        approved = [a for a in agents if a.status == AgentStatus.APPROVED]
        for offset, agent in enumerate(approved):
            bump = Decimal("0.05") * offset
            for source, target, buy, sell in SAMPLE_RATES:
                if source == "AFN":
                    await catalog.upsert(agent.id, source, target, buy, sell)
                else:
                    await catalog.upsert(agent.id, source, target, buy + bump, sell + bump)

        await session.commit()
        print(f"  Agents: {created} new, {len(agents) - created} existing")
        print(f"  Rates: {len(approved) * len(SAMPLE_RATES)} upserted")
        return approved


async def seed_transfers(agents: list[Agent]) -> list[str]:
    async with session_factory() as session:
        existing = await session.scalar(select(func.count(Transaction.id)))
    if existing:
        print(f"  Transfers: 0 new, {existing} existing")
        return []

    ledger = TransactionLedger(session_factory)
    codes: list[str] = []
    for i, data in enumerate(SAMPLE_TRANSFERS):
        agent = agents[i % len(agents)]
        txn = await ledger.create(
            TransactionRequest(
                agent_id=agent.id,
                sender_name=data["sender"],
                sender_phone=f"+1555010{i:04d}",
                sender_country="United States",
                receiver_name=data["receiver"],
                receiver_phone=f"+9370055{i:04d}",
                receiver_city=data["city"],
                receiver_country="Afghanistan",
                from_currency="USD",
                to_currency="AFN",
                from_amount=data["amount"],
                rate_side=RateSide.SELL,
                fee_policy=FeePolicy(Decimal("0.025"), Decimal("50")),
            ),
            SEED_ADMIN,
        )
        current = TransactionStatus.PENDING
        for step in PATHS[data["target"]]:
            await ledger.transition(txn.reference_code, current, step, SEED_ADMIN, note="seed")
            current = step
        codes.append(txn.reference_code)
        print(f"    {txn.reference_code}  {data['amount']} USD -> {data['city']}  [{current.value}]")

    print(f"  Transfers: {len(codes)} new")
    return codes


async def seed() -> None:
    print("Seeding hawala development data...")
    agents = await seed_agents()
    await seed_transfers(agents)
    print("Done.")


if __name__ == "__main__":
    asyncio.run(seed())
