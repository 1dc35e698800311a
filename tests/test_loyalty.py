from datetime import date, datetime, time

from barbershop.domain.categories.loyalty import (
    LoyaltyService,
    adjacent_category_name,
    category_rank,
    previous_semester_bounds,
    semester_bounds,
)
from barbershop.models import AppointmentStatus, CategoryAssignment

from conftest import auth_headers

TODAY = date(2025, 3, 10)


def _visits(factory, customer, barber, days, status=AppointmentStatus.PAID, month=2, year=2025):
    for day in days:
        factory.appointment(customer, barber, on_date=date(year, month, day), status=status)


def test_semester_bounds():
    assert semester_bounds(date(2025, 3, 10)) == (date(2025, 1, 1), date(2025, 6, 30))
    assert semester_bounds(date(2025, 6, 30)) == (date(2025, 1, 1), date(2025, 6, 30))
    assert semester_bounds(date(2025, 7, 1)) == (date(2025, 7, 1), date(2025, 12, 31))


def test_previous_semester_bounds_crosses_year():
    assert previous_semester_bounds(date(2025, 2, 1)) == (date(2024, 7, 1), date(2024, 12, 31))
    assert previous_semester_bounds(date(2025, 7, 2)) == (date(2025, 1, 1), date(2025, 6, 30))


def test_tier_ladder():
    assert category_rank("premium") == 3
    assert category_rank("Gold") == -1
    assert adjacent_category_name("Inicial", "promote") == "Medium"
    assert adjacent_category_name("Medium", "demote") == "Inicial"
    assert adjacent_category_name("Inicial", "demote") == "Vetado"
    assert adjacent_category_name("Premium", "promote") is None
    assert adjacent_category_name("Vetado", "demote") is None
    assert adjacent_category_name("Gold", "promote") is None


# ============================================================================
# PROMOTION
# ============================================================================


def test_inicial_promoted_after_five_visits(db, factory, categories):
    customer = factory.client(category=categories["Inicial"], started_at=datetime(2025, 1, 5, 10, 0))
    barber = factory.barber()
    _visits(factory, customer, barber, [3, 5, 7, 10, 12])

    loyalty = LoyaltyService(db)
    new_category = loyalty.apply_promotion(customer.id, TODAY)

    assert new_category.name == "Medium"
    assert loyalty.current_category(customer.id).name == "Medium"


def test_four_visits_are_not_enough(db, factory, categories):
    customer = factory.client(category=categories["Inicial"], started_at=datetime(2025, 1, 5, 10, 0))
    _visits(factory, customer, factory.barber(), [3, 5, 7, 10])

    assert LoyaltyService(db).apply_promotion(customer.id, TODAY) is None


def test_cancelled_and_scheduled_visits_do_not_count(db, factory, categories):
    customer = factory.client(category=categories["Inicial"], started_at=datetime(2025, 1, 5, 10, 0))
    barber = factory.barber()
    _visits(factory, customer, barber, [3, 5, 7, 10])
    _visits(factory, customer, barber, [11], status=AppointmentStatus.CANCELLED)
    _visits(factory, customer, barber, [12], status=AppointmentStatus.SCHEDULED)

    assert LoyaltyService(db).apply_promotion(customer.id, TODAY) is None


def test_visits_before_current_tier_do_not_count(db, factory, categories):
    customer = factory.client(category=categories["Medium"], started_at=datetime(2025, 2, 15, 9, 0))
    _visits(factory, customer, factory.barber(), range(1, 11))

    assert LoyaltyService(db).apply_promotion(customer.id, TODAY) is None


def test_previous_semester_visits_do_not_count(db, factory, categories):
    customer = factory.client(category=categories["Inicial"], started_at=datetime(2024, 9, 1, 9, 0))
    _visits(factory, customer, factory.barber(), [2, 4, 6, 8, 10], month=12, year=2024)

    assert LoyaltyService(db).apply_promotion(customer.id, TODAY) is None


def test_premium_and_banned_never_promote(db, factory, categories):
    barber = factory.barber()
    loyalty = LoyaltyService(db)
    for name in ("Premium", "Vetado"):
        customer = factory.client(category=categories[name], started_at=datetime(2025, 1, 5, 10, 0))
        _visits(factory, customer, barber, range(1, 13))
        assert loyalty.apply_promotion(customer.id, TODAY) is None


def test_client_without_tier_gets_inicial(db, factory, categories):
    customer = factory.client()
    loyalty = LoyaltyService(db)

    assert loyalty.apply_promotion(customer.id, TODAY) is None
    assert loyalty.current_category(customer.id).name == "Inicial"


def test_promotion_keeps_history_order(db, factory, categories):
    # Tier started later in the day than the transition timestamp would be
    customer = factory.client(category=categories["Inicial"], started_at=datetime(2025, 3, 10, 23, 59, 59))
    _visits(factory, customer, factory.barber(), [10, 10, 10, 10, 10], month=3)

    LoyaltyService(db).apply_promotion(customer.id, TODAY)

    history = (
        db.query(CategoryAssignment)
        .filter(CategoryAssignment.client_id == customer.id)
        .order_by(CategoryAssignment.started_at)
        .all()
    )
    assert [a.category.name for a in history] == ["Inicial", "Medium"]
    assert history[1].started_at > history[0].started_at


# ============================================================================
# DEMOTION
# ============================================================================


def test_three_penalties_demote(db, factory, categories):
    customer = factory.client(category=categories["Premium"], started_at=datetime(2025, 1, 5, 10, 0))
    barber = factory.barber()
    _visits(factory, customer, barber, [3, 5], status=AppointmentStatus.NO_SHOW)
    factory.appointment(
        customer,
        barber,
        on_date=date(2025, 2, 7),
        start=time(11, 0),
        end=time(11, 30),
        status=AppointmentStatus.CANCELLED,
        same_day_cancellation=True,
    )

    new_category = LoyaltyService(db).apply_demotion(customer.id, TODAY)

    assert new_category.name == "Medium"


def test_demotion_starts_a_fresh_penalty_count(db, factory, categories):
    customer = factory.client(category=categories["Premium"], started_at=datetime(2025, 1, 5, 10, 0))
    barber = factory.barber()
    _visits(factory, customer, barber, [1, 5, 10], status=AppointmentStatus.NO_SHOW, month=3)
    loyalty = LoyaltyService(db)

    assert loyalty.apply_demotion(customer.id, date(2025, 3, 10)).name == "Medium"

    _visits(factory, customer, barber, [20, 25], status=AppointmentStatus.NO_SHOW, month=3)
    assert loyalty.apply_demotion(customer.id, date(2025, 3, 25)) is None

    _visits(factory, customer, barber, [28], status=AppointmentStatus.NO_SHOW, month=3)
    assert loyalty.apply_demotion(customer.id, date(2025, 3, 28)).name == "Inicial"


def test_promotion_starts_a_fresh_visit_count(db, factory, categories):
    customer = factory.client(category=categories["Inicial"], started_at=datetime(2025, 1, 5, 10, 0))
    barber = factory.barber()
    _visits(factory, customer, barber, [3, 5, 7, 10, 12])
    loyalty = LoyaltyService(db)

    assert loyalty.apply_promotion(customer.id, date(2025, 2, 12)).name == "Medium"

    _visits(factory, customer, barber, range(13, 22))
    assert loyalty.apply_promotion(customer.id, date(2025, 2, 21)) is None

    _visits(factory, customer, barber, [22])
    assert loyalty.apply_promotion(customer.id, date(2025, 2, 22)).name == "Premium"


def test_manual_assignment_counts_visits_from_its_first_day(db, client, factory, categories):
    customer = factory.client(category=categories["Inicial"], started_at=datetime(2025, 1, 5, 10, 0))
    client.post(
        "/categories/assign",
        json={"codCliente": customer.id, "codCategoria": categories["Medium"].id},
        headers=auth_headers(factory.admin()),
    )
    loyalty = LoyaltyService(db)
    assignment = loyalty.repo.get_current_assignment(db, customer.id)
    assigned_on = assignment.started_at.date()

    assert assignment.category.name == "Medium"
    assert assignment.automatic is False
    assert loyalty.counting_window(assignment, assigned_on)[0] == assigned_on


def test_early_cancellations_are_not_penalties(db, factory, categories):
    customer = factory.client(category=categories["Medium"], started_at=datetime(2025, 1, 5, 10, 0))
    barber = factory.barber()
    _visits(factory, customer, barber, [3, 5], status=AppointmentStatus.NO_SHOW)
    _visits(factory, customer, barber, [7], status=AppointmentStatus.CANCELLED)

    assert LoyaltyService(db).apply_demotion(customer.id, TODAY) is None


def test_banned_client_is_not_demoted_further(db, factory, categories):
    customer = factory.client(category=categories["Vetado"], started_at=datetime(2025, 1, 5, 10, 0))
    _visits(factory, customer, factory.barber(), [3, 5, 7, 9], status=AppointmentStatus.NO_SHOW)

    assert LoyaltyService(db).apply_demotion(customer.id, TODAY) is None


def test_demotion_without_tier_is_noop(db, factory, categories):
    customer = factory.client()

    assert LoyaltyService(db).apply_demotion(customer.id, TODAY) is None


# ============================================================================
# SEMESTER REVIEW
# ============================================================================


def test_semester_review(db, factory, categories):
    review_day = date(2025, 7, 2)
    barber = factory.barber()
    slacker = factory.client(category=categories["Premium"], started_at=datetime(2025, 1, 5, 10, 0))
    regular = factory.client(category=categories["Medium"], started_at=datetime(2025, 1, 5, 10, 0))
    newcomer = factory.client(category=categories["Premium"], started_at=datetime(2025, 7, 1, 10, 0))
    beginner = factory.client(category=categories["Inicial"], started_at=datetime(2025, 1, 5, 10, 0))
    _visits(factory, slacker, barber, [3, 5], month=3)
    _visits(factory, regular, barber, [3, 5, 7], month=3)

    summary = LoyaltyService(db).semester_review(review_day)

    assert summary["semestreDesde"] == "2025-01-01"
    assert summary["semestreHasta"] == "2025-06-30"
    assert summary["revisados"] == 2
    assert summary["degradados"] == [
        {"codCliente": slacker.id, "desde": "Premium", "hasta": "Medium", "visitas": 2}
    ]
    loyalty = LoyaltyService(db)
    assert loyalty.current_category(slacker.id).name == "Medium"
    assert loyalty.current_category(regular.id).name == "Medium"
    assert loyalty.current_category(newcomer.id).name == "Premium"
    assert loyalty.current_category(beginner.id).name == "Inicial"


def test_semester_review_endpoint_is_admin_only(client, factory, categories):
    barber = factory.barber()

    denied = client.post("/categories/semester-review", headers=auth_headers(barber))
    allowed = client.post(
        "/categories/semester-review", params={"today": "2025-07-02"}, headers=auth_headers(factory.admin())
    )

    assert denied.status_code == 403
    assert allowed.status_code == 200
    assert allowed.json()["revisados"] == 0
