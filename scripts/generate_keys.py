"""
Generate local secrets for development.

- keys/private.pem, keys/public.pem: RSA-2048 keypair for RS256 access
  tokens (in production only the identity provider's public key is
  deployed here)
- a Fernet key for encrypting sender/receiver phone numbers, printed as
  a FERNET_KEY line for .env

Run once during project setup: python scripts/generate_keys.py
"""

import os
from pathlib import Path

from cryptography.fernet import Fernet
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa


def generate_rsa_keys(output_dir: str = "keys") -> tuple[Path, Path]:
    """Write an RSA-2048 keypair as PEM files; returns (private, public) paths."""
    keys_dir = Path(output_dir)
    keys_dir.mkdir(parents=True, exist_ok=True)

    private_key = rsa.generate_private_key(public_exponent=65537, key_size=2048)

    private_path = keys_dir / "private.pem"
    private_path.write_bytes(
        private_key.private_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PrivateFormat.PKCS8,
            encryption_algorithm=serialization.NoEncryption(),
        )
    )

    public_path = keys_dir / "public.pem"
    public_path.write_bytes(
        private_key.public_key().public_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PublicFormat.SubjectPublicKeyInfo,
        )
    )
    return private_path, public_path


def main() -> None:
    private_path, public_path = generate_rsa_keys()
    print("RSA keypair generated:")
    print(f"  Private key: {private_path.resolve()}")
    print(f"  Public key:  {public_path.resolve()}")
    print()
    print("Add to .env:")
    print(f"  FERNET_KEY={Fernet.generate_key().decode()}")


if __name__ == "__main__":
    # Run from project root
    project_root = Path(__file__).resolve().parent.parent
    os.chdir(project_root)
    main()
