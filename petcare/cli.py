"""CLI de administración de PetCare.

Uso:
    petcare create-admin --email admin@example.com --name "Admin"

La contraseña se toma de --password, de ADMIN_PASSWORD o se pide por
terminal.
"""

import argparse
import asyncio
import getpass
import logging
import os
from typing import Any, Dict, Optional, Sequence, Tuple

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase

from .config import get_settings
from .db import ensure_indexes
from .routers.auth import validate_password_strength
from .security import hash_password
from .utils import to_id, utcnow

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


async def create_staff_user(
    db: AsyncIOMotorDatabase, name: str, email: str, password: str
) -> Tuple[Dict[str, Any], bool]:
    """Crea un usuario de personal o marca como tal al que ya existe.

    Devuelve el usuario (sin hash) y si se ha creado.
    """
    existing = await db.users.find_one({"email": email})
    if existing:
        if not existing.get("is_staff"):
            await db.users.update_one({"_id": existing["_id"]}, {"$set": {"is_staff": True}})
        user = await db.users.find_one({"_id": existing["_id"]}, {"password_hash": 0})
        return to_id(user), False

    doc = {
        "name": name,
        "email": email,
        "password_hash": hash_password(password),
        "phone": None,
        "address": None,
        "is_staff": True,
        "created_at": utcnow(),
    }
    res = await db.users.insert_one(doc)
    user = await db.users.find_one({"_id": res.inserted_id}, {"password_hash": 0})
    return to_id(user), True


async def _create_admin(name: str, email: str, password: str) -> None:
    settings = get_settings()
    client = AsyncIOMotorClient(settings.mongodb_uri)
    try:
        db = client[settings.db_name]
        await ensure_indexes(db)
        user, created = await create_staff_user(db, name, email, password)
    finally:
        client.close()
    if created:
        logger.info("Usuario de personal creado: %s (%s)", user["email"], user["id"])
    else:
        logger.info("El usuario %s ya existía; ahora es personal", user["email"])


def cmd_create_admin(args: argparse.Namespace) -> int:
    """Crea (o promueve) el usuario administrador."""
    password = args.password or os.getenv("ADMIN_PASSWORD") or getpass.getpass("Contraseña: ")
    try:
        validate_password_strength(password)
    except ValueError as e:
        logger.error("%s", e)
        return 1
    asyncio.run(_create_admin(args.name, args.email.strip(), password))
    return 0


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        description="PetCare CLI",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    subparsers = parser.add_subparsers(dest="command", help="Comandos disponibles")

    admin = subparsers.add_parser("create-admin", help="Crear el usuario administrador")
    admin.add_argument("--email", required=True)
    admin.add_argument("--name", default="Admin")
    admin.add_argument("--password")

    args = parser.parse_args(argv)

    if args.command == "create-admin":
        return cmd_create_admin(args)
    parser.print_help()
    return 1


if __name__ == "__main__":
    raise SystemExit(main())
