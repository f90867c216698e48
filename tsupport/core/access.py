"""Customer allow-list check that precedes chat creation."""

import json
import logging
from collections.abc import Iterable
from pathlib import Path

from sqlalchemy.exc import SQLAlchemyError

from tsupport.common.code import ErrCode
from tsupport.configs import configs
from tsupport.infra.database import SessionFactory
from tsupport.repos.allowed_user import AllowedUserRepository

logger = logging.getLogger(__name__)


def load_static_ids(inline: Iterable[str] = (), path: str = "") -> frozenset[str]:
    """Merge configured ids with the optional JSON array file at *path*."""
    ids = {i.strip() for i in inline if i and i.strip()}
    if path:
        try:
            data = json.loads(Path(path).read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError):
            logger.warning("Could not read static allow-list %s", path, exc_info=True)
        else:
            if isinstance(data, list):
                ids.update(str(i).strip() for i in data if str(i).strip())
            else:
                logger.warning("Static allow-list %s is not a JSON array", path)
    return frozenset(ids)


class AccessGate:
    """Static list first (no I/O), then the ``allowed_users`` table."""

    def __init__(
        self,
        session_factory: SessionFactory,
        static_ids: Iterable[str] | None = None,
    ) -> None:
        self._session_factory = session_factory
        if static_ids is None:
            static_ids = load_static_ids(configs.Access.StaticIds, configs.Access.StaticIdsFile)
        self._static_ids = frozenset(static_ids)

    async def validate(self, customer_id: str) -> bool:
        customer_id = (customer_id or "").strip()
        if not customer_id:
            return False
        if customer_id in self._static_ids:
            return True

        try:
            async with self._session_factory() as db:
                return await AllowedUserRepository(db).exists(customer_id)
        except SQLAlchemyError as e:
            logger.error("Allow-list lookup failed for %s: %s", customer_id, e)
            raise ErrCode.SERVICE_UNAVAILABLE.with_messages("Could not verify customer id, please retry") from e
