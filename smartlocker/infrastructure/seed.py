from __future__ import annotations

import logging
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any

import yaml

from smartlocker.core.entities.locker import Locker, LockerStatus
from smartlocker.core.repositories.unit_of_work import UnitOfWork

logger = logging.getLogger(__name__)


class CatalogueError(ValueError):
    """The locker catalogue file is malformed."""


def load_locker_catalogue(path: Path) -> list[Locker]:
    with path.open("r", encoding="utf-8") as f:
        doc = yaml.safe_load(f) or {}

    entries = doc.get("lockers") if isinstance(doc, dict) else None
    if not isinstance(entries, list):
        raise CatalogueError(f"{path}: expected a top-level 'lockers' list")

    lockers = [_parse_entry(entry, path) for entry in entries]
    ids = [locker.locker_id for locker in lockers]
    if len(ids) != len(set(ids)):
        raise CatalogueError(f"{path}: duplicate locker ids")
    return lockers


def _parse_entry(entry: Any, path: Path) -> Locker:
    if not isinstance(entry, dict):
        raise CatalogueError(f"{path}: each locker must be a mapping, got {entry!r}")

    locker_id = entry.get("id")
    if isinstance(locker_id, bool) or not isinstance(locker_id, int):
        raise CatalogueError(f"{path}: locker id must be an int, got {locker_id!r}")

    try:
        price = Decimal(str(entry.get("price_per_hour")))
    except InvalidOperation as e:
        raise CatalogueError(f"{path}: invalid price for locker {locker_id}") from e
    if not price.is_finite() or price < 0:
        raise CatalogueError(f"{path}: price for locker {locker_id} must be non-negative")

    try:
        status = LockerStatus(entry.get("status", LockerStatus.AVAILABLE.value))
    except ValueError as e:
        raise CatalogueError(f"{path}: unknown status for locker {locker_id}") from e

    return Locker(
        locker_id=locker_id,
        name=str(entry.get("name") or f"Locker {locker_id}"),
        price_per_hour=price,
        status=status,
    )


def seed_lockers(uow: UnitOfWork, catalogue: list[Locker]) -> int:
    """Provision the catalogue only into an empty registry. Returns the number inserted."""
    with uow:
        if uow.lockers.list_all():
            return 0
        for locker in catalogue:
            uow.lockers.upsert(locker)
        uow.commit()

    logger.info("Seeded %d locker(s) from catalogue", len(catalogue))
    return len(catalogue)
