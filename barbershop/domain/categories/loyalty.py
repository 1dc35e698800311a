"""
Automated loyalty tier transitions for clients

Tiers, lowest to highest: Vetado < Inicial < Medium < Premium

- Promotion after a checkout: enough attended (Cobrado) appointments inside
  the counting window move the client one tier up.
- Demotion after a no-show or a same-day cancellation: enough penalties
  inside the counting window move the client one tier down.
- Semester review: Medium/Premium clients that did not keep the minimum
  number of visits during the finished semester move one tier down.

The counting window runs from the later of the semester start and the start
of the client's current tier, so every transition starts a fresh count.
After an automatic transition the count starts the next day, leaving out the
visits and penalties that caused it.
"""

import logging
from datetime import date, datetime, timedelta
from typing import Optional

from sqlalchemy.orm import Session

from ... import config
from ...models import Category, CategoryAssignment
from .repository import CategoryRepository

logger = logging.getLogger(__name__)

CATEGORY_RANK = ["Vetado", "Inicial", "Medium", "Premium"]
INITIAL_CATEGORY = "Inicial"
BANNED_CATEGORY = "Vetado"

DEFAULT_CATEGORIES = [
    {
        "name": "Inicial",
        "description": "Categoría inicial para clientes nuevos",
        "haircut_discount": 0,
        "product_discount": 0,
    },
    {
        "name": "Medium",
        "description": "Clientes frecuentes con descuento en cortes y productos",
        "haircut_discount": 5,
        "product_discount": 5,
    },
    {
        "name": "Premium",
        "description": "Clientes más fieles con el mayor descuento disponible",
        "haircut_discount": 10,
        "product_discount": 10,
    },
    {
        "name": "Vetado",
        "description": "Clientes sin permiso para reservar turnos",
        "haircut_discount": 0,
        "product_discount": 0,
    },
]


def category_rank(name: Optional[str]) -> int:
    """Position in CATEGORY_RANK, -1 for custom categories"""
    if not name:
        return -1
    normalized = name.strip().lower()
    for index, rank_name in enumerate(CATEGORY_RANK):
        if rank_name.lower() == normalized:
            return index
    return -1


def adjacent_category_name(name: str, direction: str) -> Optional[str]:
    """Tier one step up ("promote") or down ("demote"), None at the ends"""
    index = category_rank(name)
    if index == -1:
        return None
    target = index + 1 if direction == "promote" else index - 1
    if target < 0 or target >= len(CATEGORY_RANK):
        return None
    return CATEGORY_RANK[target]


def is_banned(category: Optional[Category]) -> bool:
    return category is not None and category_rank(category.name) == 0


def semester_bounds(day: date) -> tuple[date, date]:
    """Jan 1 - Jun 30 or Jul 1 - Dec 31"""
    if day.month <= 6:
        return date(day.year, 1, 1), date(day.year, 6, 30)
    return date(day.year, 7, 1), date(day.year, 12, 31)


def previous_semester_bounds(day: date) -> tuple[date, date]:
    start, _ = semester_bounds(day)
    return semester_bounds(start - timedelta(days=1))


def transition_timestamp(today: date) -> datetime:
    """Assignment start for a transition happening on `today`"""
    return datetime.combine(today, datetime.now().time())


def next_start(current: Optional[CategoryAssignment], today: date) -> datetime:
    """Start for a new tier row, always after the current row so history stays ordered"""
    started_at = transition_timestamp(today)
    if current is not None:
        started_at = max(started_at, current.started_at + timedelta(microseconds=1))
    return started_at


def seed_default_categories(db: Session) -> int:
    """Create the four standard tiers when the categories table is empty"""
    if db.query(Category).count() > 0:
        return 0
    for data in DEFAULT_CATEGORIES:
        db.add(Category(**data))
    db.commit()
    logger.info(f"✅ Seeded {len(DEFAULT_CATEGORIES)} default categories")
    return len(DEFAULT_CATEGORIES)


class LoyaltyService:
    """Applies the tier rules for a single client or for every client"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = CategoryRepository()

    def current_category(self, client_id: str) -> Optional[Category]:
        assignment = self.repo.get_current_assignment(self.db, client_id)
        return assignment.category if assignment else None

    def assign_initial(self, client_id: str, today: Optional[date] = None) -> Optional[CategoryAssignment]:
        """Give a client the Inicial tier, skipped when that category does not exist"""
        today = today or date.today()
        category = self.repo.get_category_by_name(self.db, INITIAL_CATEGORY)
        if not category:
            logger.warning(f"⚠️ Category {INITIAL_CATEGORY} not found, client {client_id} left without tier")
            return None
        return self.repo.add_assignment(self.db, client_id, category.id, transition_timestamp(today))

    def counting_window(self, assignment: CategoryAssignment, today: date) -> tuple[date, date]:
        semester_start, semester_end = semester_bounds(today)
        assigned_on = assignment.started_at.date()
        # The visit or penalty behind an automatic change is dated on its start day
        if assignment.automatic:
            assigned_on += timedelta(days=1)
        return max(semester_start, assigned_on), semester_end

    def _move(
        self, assignment: CategoryAssignment, direction: str, today: date, reason: str
    ) -> Optional[Category]:
        client_id = assignment.client_id
        current = assignment.category
        target_name = adjacent_category_name(current.name, direction)
        if not target_name:
            return None

        target = self.repo.get_category_by_name(self.db, target_name)
        if not target:
            logger.warning(
                f"⚠️ Cannot {direction} client {client_id}: category {target_name} not found, skipping"
            )
            return None

        self.repo.add_assignment(self.db, client_id, target.id, next_start(assignment, today), automatic=True)
        logger.info(f"✅ Client {client_id} {direction}d: {current.name} → {target.name} ({reason})")
        return target

    def apply_promotion(self, client_id: str, today: Optional[date] = None) -> Optional[Category]:
        """
        Run after a checkout. Returns the new category when the client moved up.
        """
        today = today or date.today()
        assignment = self.repo.get_current_assignment(self.db, client_id)
        if not assignment:
            self.assign_initial(client_id, today)
            assignment = self.repo.get_current_assignment(self.db, client_id)
            if not assignment:
                return None

        current = assignment.category
        thresholds = {
            "inicial": config.PROMOTE_TO_MEDIUM_VISITS,
            "medium": config.PROMOTE_TO_PREMIUM_VISITS,
        }
        threshold = thresholds.get(current.name.strip().lower())
        if threshold is None:
            # Vetado, Premium and custom categories never move up automatically
            return None

        start, end = self.counting_window(assignment, today)
        attended = self.repo.count_attended(self.db, client_id, start, end)
        logger.debug(f"🔍 Client {client_id} attended {attended}/{threshold} since {start} as {current.name}")
        if attended < threshold:
            return None

        return self._move(assignment, "promote", today, f"{attended} visits since {start}")

    def apply_demotion(self, client_id: str, today: Optional[date] = None) -> Optional[Category]:
        """
        Run after a no-show or a same-day cancellation. Returns the new category
        when the client moved down.
        """
        today = today or date.today()
        assignment = self.repo.get_current_assignment(self.db, client_id)
        if not assignment:
            return None

        current = assignment.category
        if category_rank(current.name) <= 0:
            return None

        start, end = self.counting_window(assignment, today)
        penalties = self.repo.count_penalties(self.db, client_id, start, end)
        threshold = config.PENALTY_DEMOTION_THRESHOLD
        logger.debug(f"🔍 Client {client_id} has {penalties}/{threshold} penalties since {start}")
        if penalties < threshold:
            return None

        return self._move(assignment, "demote", today, f"{penalties} penalties since {start}")

    def semester_review(self, today: Optional[date] = None) -> dict:
        """
        Demote Medium/Premium clients that did not keep the minimum visits
        during the semester before `today`. Should be run as a scheduled job
        at the start of each semester.

        Returns:
            dict: Summary of the review
        """
        today = today or date.today()
        start, end = previous_semester_bounds(today)
        retention = {
            "premium": config.RETAIN_PREMIUM_VISITS,
            "medium": config.RETAIN_MEDIUM_VISITS,
        }
        summary = {
            "semestreDesde": start.isoformat(),
            "semestreHasta": end.isoformat(),
            "revisados": 0,
            "degradados": [],
        }

        try:
            for client_id, assignment in self.repo.get_current_assignments(self.db).items():
                current = assignment.category
                minimum = retention.get(current.name.strip().lower())
                if minimum is None:
                    continue
                # Tier obtained after the reviewed semester closed
                if assignment.started_at.date() > end:
                    continue

                summary["revisados"] += 1
                attended = self.repo.count_attended(self.db, client_id, start, end)
                if attended >= minimum:
                    continue

                target = self._move(
                    assignment, "demote", today, f"{attended}/{minimum} visits in {start}..{end}"
                )
                if target:
                    summary["degradados"].append(
                        {
                            "codCliente": client_id,
                            "desde": current.name,
                            "hasta": target.name,
                            "visitas": attended,
                        }
                    )

            logger.info(
                f"📊 Semester review {start}..{end}: {summary['revisados']} reviewed, "
                f"{len(summary['degradados'])} demoted"
            )
            return summary

        except Exception as e:
            logger.error(f"❌ Error running semester review: {str(e)}")
            self.db.rollback()
            raise
