import uuid
import random
import logging
from datetime import datetime, timedelta
from typing import Callable, Sequence
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import update, and_
from app.core.config import settings
from app.core.errors import NotFoundError, InvalidInputError
from app.core.timezones import utc_now
from app.modules.categories.models import CategoryDoctorAssignment, SELECTION_ALGORITHMS
from app.modules.categories.repository import CategoryRepository
from app.modules.selection.algorithms import Candidate, pick_candidate, prefer_online

logger = logging.getLogger(__name__)

class DoctorSelectionService:
    """Applies a category's selection policy and records the policy state on the winning assignment.

    State writes are compare-and-set UPDATEs against the values the pick was based on;
    losing a race re-reads the assignments and picks again.
    """

    def __init__(self, session: AsyncSession, *, now: Callable[[], datetime] = utc_now,
                 rng: random.Random | None = None, ceiling: int | None = None, max_retries: int | None = None):
        self.session = session
        self.categories = CategoryRepository(session)
        self.now = now
        self.rng = rng or random.Random()
        self.ceiling = settings.ROUND_ROBIN_CEILING if ceiling is None else ceiling
        self.max_retries = settings.SELECTION_MAX_RETRIES if max_retries is None else max_retries

    async def select_doctor(self, category_id: uuid.UUID, algorithm: str | None = None,
                            exclude: Sequence[uuid.UUID] = ()) -> uuid.UUID | None:
        doctor_id = await self.pick(category_id, algorithm, exclude)
        await self.session.commit()
        return doctor_id

    async def pick(self, category_id: uuid.UUID, algorithm: str | None = None,
                   exclude: Sequence[uuid.UUID] = ()) -> uuid.UUID | None:
        """Select within the caller's unit of work; the caller commits."""
        category = await self.categories.get(category_id)
        if not category:
            raise NotFoundError("Category not found")
        algorithm = algorithm or category.selection_algorithm
        if algorithm not in SELECTION_ALGORITHMS:
            raise InvalidInputError(f"Unknown selection algorithm: {algorithm}")

        for attempt in range(self.max_retries + 1):
            pool = await self._candidates(category_id, exclude)
            if not pool:
                logger.info(f"No eligible doctor for category {category_id}")
                return None
            chosen = pick_candidate(prefer_online(pool), algorithm, self.rng)
            if await self._record(category_id, algorithm, chosen, pool):
                logger.debug(f"Selected doctor {chosen.doctor_id} for category {category_id} via {algorithm}")
                return chosen.doctor_id
            logger.info(f"Selection state for doctor {chosen.doctor_id} changed underneath us (attempt {attempt + 1})")

        logger.warning(f"Gave up selecting a doctor for category {category_id} after {self.max_retries + 1} attempts")
        return None

    async def _candidates(self, category_id: uuid.UUID, exclude: Sequence[uuid.UUID]) -> list[Candidate]:
        rows = await self.categories.active_assignments(category_id, exclude, fresh=True)
        return [
            Candidate(
                doctor_id=d.id,
                priority=a.priority,
                weight=a.weight,
                last_assigned_at=a.last_assigned_at,
                round_robin_counter=a.round_robin_counter,
                is_online=d.is_online,
            )
            for a, d in rows
        ]

    async def _record(self, category_id: uuid.UUID, algorithm: str, chosen: Candidate, pool: list[Candidate]) -> bool:
        if algorithm == "least_recently_used":
            return await self._stamp_last_assigned(category_id, chosen, pool)
        if algorithm == "round_robin":
            return await self._advance_counter(category_id, chosen, pool)
        return True

    def _row(self, category_id: uuid.UUID, doctor_id: uuid.UUID):
        return and_(CategoryDoctorAssignment.category_id == category_id,
                    CategoryDoctorAssignment.doctor_id == doctor_id)

    async def _stamp_last_assigned(self, category_id: uuid.UUID, chosen: Candidate, pool: list[Candidate]) -> bool:
        stamp = self.now()
        seen = [c.last_assigned_at for c in pool if c.last_assigned_at is not None]
        if seen and max(seen) >= stamp:
            stamp = max(seen) + timedelta(microseconds=1)
        if chosen.last_assigned_at is None:
            guard = CategoryDoctorAssignment.last_assigned_at.is_(None)
        else:
            guard = CategoryDoctorAssignment.last_assigned_at == chosen.last_assigned_at
        res = await self.session.execute(
            update(CategoryDoctorAssignment)
            .where(self._row(category_id, chosen.doctor_id), guard)
            .values(last_assigned_at=stamp)
            .execution_options(synchronize_session=False)
        )
        return res.rowcount == 1

    async def _advance_counter(self, category_id: uuid.UUID, chosen: Candidate, pool: list[Candidate]) -> bool:
        res = await self.session.execute(
            update(CategoryDoctorAssignment)
            .where(self._row(category_id, chosen.doctor_id),
                   CategoryDoctorAssignment.round_robin_counter == chosen.round_robin_counter)
            .values(round_robin_counter=CategoryDoctorAssignment.round_robin_counter + 1)
            .execution_options(synchronize_session=False)
        )
        if res.rowcount != 1:
            return False
        highest = max([c.round_robin_counter for c in pool if c.doctor_id != chosen.doctor_id]
                      + [chosen.round_robin_counter + 1])
        if highest > self.ceiling:
            await self.session.execute(
                update(CategoryDoctorAssignment)
                .where(CategoryDoctorAssignment.category_id == category_id)
                .values(round_robin_counter=0)
                .execution_options(synchronize_session=False)
            )
            logger.info(f"Round-robin counters for category {category_id} passed {self.ceiling}; reset to 0")
        return True
