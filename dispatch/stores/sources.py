"""Backend-of-record adapters feeding the stores"""

from typing import Callable, Protocol

from sqlalchemy.orm import Session, sessionmaker
from starlette.concurrency import run_in_threadpool

from ..domain.billing.repository import BillingRepository
from ..domain.billing.schemas import BillingResponse
from ..domain.missions.repository import MissionRepository
from ..domain.missions.schemas import MissionResponse
from ..domain.technicians.repository import UserRepository
from ..domain.technicians.schemas import TechnicianResponse


class DataSource(Protocol):
    async def fetch_missions(self) -> list[dict]: ...

    async def fetch_technicians(self) -> list[dict]: ...

    async def fetch_billings(self) -> list[dict]: ...


class SqlDataSource:
    """Reads full collections through SQLAlchemy, off the event loop"""

    def __init__(self, session_factory: sessionmaker):
        self.session_factory = session_factory

    def _run(self, query: Callable[[Session], list]) -> list:
        db = self.session_factory()
        try:
            return query(db)
        finally:
            db.close()

    async def fetch_missions(self) -> list[dict]:
        return await run_in_threadpool(
            self._run,
            lambda db: [
                MissionResponse.model_validate(m).model_dump()
                for m in MissionRepository.list_missions(db)
            ],
        )

    async def fetch_technicians(self) -> list[dict]:
        return await run_in_threadpool(
            self._run,
            lambda db: [
                TechnicianResponse.model_validate(t).model_dump()
                for t in UserRepository.list_technicians(db)
            ],
        )

    async def fetch_billings(self) -> list[dict]:
        return await run_in_threadpool(
            self._run,
            lambda db: [
                BillingResponse.model_validate(b).model_dump()
                for b in BillingRepository.list_billings(db)
            ],
        )
