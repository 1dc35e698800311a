from datetime import date, time, timedelta

import pytest
from fastapi import HTTPException

from barbershop.domain.appointments.service import (
    AppointmentService,
    discounted_price,
    slot_grid,
    validate_slot,
)
from barbershop.models import Appointment, AppointmentStatus, Invoice

from conftest import auth_headers, next_weekday


# ============================================================================
# SLOT RULES
# ============================================================================


def test_slot_grid_covers_opening_hours():
    grid = slot_grid()
    assert grid[0] == time(8, 0)
    assert grid[-1] == time(19, 30)
    assert len(grid) == 24


def test_discounted_price():
    assert discounted_price(1000, 10) == 900.0
    assert discounted_price(1000, None) == 1000.0
    assert discounted_price(999.99, 5) == 949.99


@pytest.mark.parametrize(
    "start,end",
    [
        (time(7, 30), time(8, 0)),
        (time(10, 15), time(10, 45)),
        (time(20, 0), time(20, 30)),
        (time(19, 30), time(20, 30)),
        (time(11, 0), time(10, 30)),
    ],
)
def test_validate_slot_rejects_invalid_ranges(start, end):
    today = date(2025, 3, 10)
    with pytest.raises(HTTPException) as exc:
        validate_slot(today, start, end, today)
    assert exc.value.status_code == 400


def test_validate_slot_rejects_past_dates():
    with pytest.raises(HTTPException) as exc:
        validate_slot(date(2025, 3, 9), time(10, 0), time(10, 30), date(2025, 3, 10))
    assert exc.value.detail == "No se pueden reservar turnos en fechas pasadas"


def test_validate_slot_accepts_last_slot_today():
    today = date(2025, 3, 10)
    validate_slot(today, time(19, 30), time(20, 0), today)


# ============================================================================
# BOOKING
# ============================================================================


def _booking(barber, on_date=None, start="10:00", end="10:30", **extra):
    payload = {
        "codBarbero": barber.id,
        "fechaTurno": (on_date or next_weekday()).isoformat(),
        "horaDesde": start,
        "horaHasta": end,
    }
    payload.update(extra)
    return payload


def test_client_books_for_themselves(client, factory, categories, branch):
    customer = factory.client(category=categories["Inicial"])
    barber = factory.barber(branch=branch)

    response = client.post("/appointments", json=_booking(barber), headers=auth_headers(customer))

    assert response.status_code == 201
    body = response.json()
    assert body["codCliente"] == customer.id
    assert body["estado"] == "Programado"
    assert body["horaDesde"] == "10:00"
    assert body["codSucursal"] == branch.id
    assert body["barbero"] == "Carlos Gomez"


def test_client_cannot_book_for_someone_else(client, factory, categories):
    customer = factory.client(category=categories["Inicial"])
    other = factory.client(category=categories["Inicial"])
    barber = factory.barber()

    response = client.post(
        "/appointments", json=_booking(barber, codCliente=other.id), headers=auth_headers(customer)
    )

    assert response.status_code == 403


def test_staff_booking_requires_client(client, factory):
    admin = factory.admin()
    barber = factory.barber()

    response = client.post("/appointments", json=_booking(barber), headers=auth_headers(admin))

    assert response.status_code == 400


def test_banned_client_cannot_book(client, factory, categories):
    customer = factory.client(category=categories["Vetado"])
    barber = factory.barber()

    response = client.post("/appointments", json=_booking(barber), headers=auth_headers(customer))

    assert response.status_code == 403
    assert "vetado" in response.json()["detail"]


def test_booking_rejects_off_grid_time(client, factory, categories):
    customer = factory.client(category=categories["Inicial"])
    barber = factory.barber()

    response = client.post(
        "/appointments", json=_booking(barber, start="10:10", end="10:40"), headers=auth_headers(customer)
    )

    assert response.status_code == 400


def test_booking_rejects_past_date(client, factory, categories):
    customer = factory.client(category=categories["Inicial"])
    barber = factory.barber()

    response = client.post(
        "/appointments",
        json=_booking(barber, on_date=date.today() - timedelta(days=1)),
        headers=auth_headers(customer),
    )

    assert response.status_code == 400


def test_booking_unknown_barber(client, factory, categories):
    customer = factory.client(category=categories["Inicial"])
    not_a_barber = factory.client(category=categories["Inicial"])

    response = client.post("/appointments", json=_booking(not_a_barber), headers=auth_headers(customer))

    assert response.status_code == 404


def test_barber_double_booking_conflict(client, factory, categories):
    first = factory.client(category=categories["Inicial"])
    second = factory.client(category=categories["Inicial"])
    barber = factory.barber()
    factory.appointment(first, barber, on_date=next_weekday())

    response = client.post("/appointments", json=_booking(barber), headers=auth_headers(second))

    assert response.status_code == 409
    assert response.json()["detail"] == "El barbero ya tiene un turno en ese horario"


def test_client_double_booking_conflict(client, factory, categories):
    customer = factory.client(category=categories["Inicial"])
    barber = factory.barber()
    other_barber = factory.barber()
    factory.appointment(customer, barber, on_date=next_weekday())

    response = client.post("/appointments", json=_booking(other_barber), headers=auth_headers(customer))

    assert response.status_code == 409
    assert response.json()["detail"] == "El cliente ya tiene un turno en ese horario"


def test_cancelled_slot_can_be_booked_again(client, factory, categories):
    first = factory.client(category=categories["Inicial"])
    second = factory.client(category=categories["Inicial"])
    barber = factory.barber()
    factory.appointment(first, barber, on_date=next_weekday(), status=AppointmentStatus.CANCELLED)

    response = client.post("/appointments", json=_booking(barber), headers=auth_headers(second))

    assert response.status_code == 201


def test_booking_requires_authentication(client, factory):
    barber = factory.barber()

    response = client.post("/appointments", json=_booking(barber))

    assert response.status_code == 401


# ============================================================================
# AVAILABILITY
# ============================================================================


def test_barber_availability_excludes_taken_slots(client, factory, categories):
    customer = factory.client(category=categories["Inicial"])
    barber = factory.barber()
    day = next_weekday()
    factory.appointment(customer, barber, on_date=day, start=time(9, 0), end=time(9, 30))
    factory.appointment(
        customer, barber, on_date=day, start=time(9, 30), end=time(10, 0), status=AppointmentStatus.CANCELLED
    )

    response = client.get(f"/appointments/barber/{barber.id}/{day.isoformat()}", headers=auth_headers(customer))

    assert response.status_code == 200
    hours = [slot["hora"] for slot in response.json()]
    assert "09:00" not in hours
    assert "09:30" in hours
    assert len(hours) == 23


def test_inactive_barber_has_no_availability(client, factory, categories):
    customer = factory.client(category=categories["Inicial"])
    barber = factory.barber(is_active=False)

    response = client.get(
        f"/appointments/barber/{barber.id}/{next_weekday().isoformat()}", headers=auth_headers(customer)
    )

    assert response.status_code == 200
    assert response.json() == []


def test_branch_slot_free_while_any_barber_is_free(client, factory, categories, branch):
    customer = factory.client(category=categories["Inicial"])
    other = factory.client(category=categories["Inicial"])
    first = factory.barber(branch=branch)
    second = factory.barber(branch=branch)
    day = next_weekday()
    factory.appointment(customer, first, on_date=day, start=time(8, 0), end=time(8, 30))
    factory.appointment(customer, first, on_date=day, start=time(8, 30), end=time(9, 0))
    factory.appointment(other, second, on_date=day, start=time(8, 0), end=time(8, 30))

    response = client.get(f"/appointments/available/{day.isoformat()}/{branch.id}", headers=auth_headers(customer))

    hours = [slot["hora"] for slot in response.json()]
    assert "08:00" not in hours
    assert "08:30" in hours


def test_branch_without_barbers_has_no_slots(client, factory, categories, branch):
    customer = factory.client(category=categories["Inicial"])

    response = client.get(
        f"/appointments/available/{next_weekday().isoformat()}/{branch.id}", headers=auth_headers(customer)
    )

    assert response.json() == []


def test_availability_rejects_bad_date(client, factory, categories):
    customer = factory.client(category=categories["Inicial"])
    barber = factory.barber()

    response = client.get(f"/appointments/barber/{barber.id}/10-03-2025", headers=auth_headers(customer))

    assert response.status_code == 400


# ============================================================================
# LISTINGS & VISIBILITY
# ============================================================================


def test_client_cannot_see_other_clients_appointment(client, factory, categories):
    owner = factory.client(category=categories["Inicial"])
    intruder = factory.client(category=categories["Inicial"])
    appointment = factory.appointment(owner, factory.barber(), on_date=next_weekday())

    response = client.get(f"/appointments/{appointment.id}", headers=auth_headers(intruder))

    assert response.status_code == 403


def test_list_appointments_is_staff_only(client, factory, categories):
    customer = factory.client(category=categories["Inicial"])

    response = client.get("/appointments", headers=auth_headers(customer))

    assert response.status_code == 403


def test_list_appointments_filters_by_status(client, factory, categories):
    customer = factory.client(category=categories["Inicial"])
    barber = factory.barber()
    factory.appointment(customer, barber, start=time(8, 0), end=time(8, 30))
    factory.appointment(customer, barber, start=time(9, 0), end=time(9, 30), status=AppointmentStatus.PAID)

    response = client.get("/appointments", params={"estado": "Cobrado"}, headers=auth_headers(barber))

    assert response.status_code == 200
    assert [a["estado"] for a in response.json()] == ["Cobrado"]

    invalid = client.get("/appointments", params={"estado": "Perdido"}, headers=auth_headers(barber))
    assert invalid.status_code == 400


def test_appointments_by_user_for_barber_side(client, factory, categories):
    customer = factory.client(category=categories["Inicial"])
    barber = factory.barber()
    factory.appointment(customer, barber, on_date=next_weekday())

    response = client.get(f"/appointments/user/{barber.id}", headers=auth_headers(barber))

    assert response.status_code == 200
    assert len(response.json()) == 1


def test_appointments_by_branch(client, factory, categories, branch):
    customer = factory.client(category=categories["Inicial"])
    inside = factory.barber(branch=branch)
    outside = factory.barber()
    factory.appointment(customer, inside, start=time(8, 0), end=time(8, 30))
    factory.appointment(customer, outside, start=time(9, 0), end=time(9, 30))

    response = client.get(f"/appointments/branch/{branch.id}", headers=auth_headers(inside))

    assert [a["codBarbero"] for a in response.json()] == [inside.id]


# ============================================================================
# LIFECYCLE
# ============================================================================


def test_reschedule_appointment(client, factory, categories):
    customer = factory.client(category=categories["Inicial"])
    appointment = factory.appointment(customer, factory.barber(), on_date=next_weekday())

    response = client.put(
        f"/appointments/{appointment.id}",
        json={"horaDesde": "11:00", "horaHasta": "11:30"},
        headers=auth_headers(customer),
    )

    assert response.status_code == 200
    assert response.json()["horaDesde"] == "11:00"


def test_reschedule_into_own_slot_is_not_a_conflict(client, factory, categories):
    customer = factory.client(category=categories["Inicial"])
    appointment = factory.appointment(customer, factory.barber(), on_date=next_weekday())

    response = client.put(
        f"/appointments/{appointment.id}",
        json={"horaDesde": "10:00", "horaHasta": "11:00"},
        headers=auth_headers(customer),
    )

    assert response.status_code == 200
    assert response.json()["horaHasta"] == "11:00"


def test_banned_client_cannot_reschedule(client, db, factory, categories):
    customer = factory.client(category=categories["Vetado"])
    appointment = factory.appointment(customer, factory.barber(), on_date=next_weekday())

    response = client.put(
        f"/appointments/{appointment.id}",
        json={"horaDesde": "11:00", "horaHasta": "11:30"},
        headers=auth_headers(customer),
    )

    assert response.status_code == 403
    db.refresh(appointment)
    assert appointment.start_time == time(10, 0)


def test_inactive_client_appointment_cannot_be_rescheduled(client, factory, categories):
    customer = factory.client(category=categories["Inicial"], is_active=False)
    appointment = factory.appointment(customer, factory.barber(), on_date=next_weekday())

    response = client.put(
        f"/appointments/{appointment.id}",
        json={"horaDesde": "11:00", "horaHasta": "11:30"},
        headers=auth_headers(factory.admin()),
    )

    assert response.status_code == 404


def test_cancel_in_advance_is_not_penalized(client, factory, categories):
    customer = factory.client(category=categories["Inicial"])
    appointment = factory.appointment(customer, factory.barber(), on_date=next_weekday(2))

    response = client.put(f"/appointments/{appointment.id}/cancel", headers=auth_headers(customer))

    assert response.status_code == 200
    body = response.json()
    assert body["turno"]["estado"] == "Cancelado"
    assert body["turno"]["cancelacionMismoDia"] is False
    assert body["categoriaNueva"] is None


def test_cancelled_appointment_cannot_change(client, factory, categories):
    customer = factory.client(category=categories["Inicial"])
    appointment = factory.appointment(
        customer, factory.barber(), on_date=next_weekday(), status=AppointmentStatus.CANCELLED
    )

    response = client.put(f"/appointments/{appointment.id}/cancel", headers=auth_headers(customer))

    assert response.status_code == 409


def test_same_day_cancellation_demotes_after_three_penalties(client, factory, categories):
    customer = factory.client(category=categories["Medium"])
    barber = factory.barber()
    factory.appointment(customer, barber, start=time(8, 0), end=time(8, 30), status=AppointmentStatus.NO_SHOW)
    factory.appointment(customer, barber, start=time(8, 30), end=time(9, 0), status=AppointmentStatus.NO_SHOW)
    appointment = factory.appointment(customer, barber, start=time(18, 0), end=time(18, 30))

    response = client.put(f"/appointments/{appointment.id}/cancel", headers=auth_headers(customer))

    assert response.status_code == 200
    body = response.json()
    assert body["turno"]["cancelacionMismoDia"] is True
    assert body["categoriaNueva"] == "Inicial"


def test_checkout_applies_category_discount(client, factory, categories):
    customer = factory.client(category=categories["Premium"])
    barber = factory.barber()
    haircut = factory.haircut(base_price=2000)
    appointment = factory.appointment(customer, barber)

    response = client.put(
        f"/appointments/{appointment.id}/checkout",
        json={"codCorte": haircut.id, "metodoPago": "Efectivo"},
        headers=auth_headers(barber),
    )

    assert response.status_code == 200
    body = response.json()
    assert body["turno"]["estado"] == "Cobrado"
    assert body["turno"]["precioTurno"] == 1800.0
    assert body["turno"]["metodoPago"] == "Efectivo"
    assert body["factura"] is None
    assert body["errorFacturacion"] is None


def test_checkout_promotes_on_fifth_visit(client, factory, categories):
    customer = factory.client(category=categories["Inicial"])
    barber = factory.barber()
    haircut = factory.haircut()
    for hour in range(8, 12):
        factory.appointment(
            customer, barber, start=time(hour, 0), end=time(hour, 30), status=AppointmentStatus.PAID
        )
    appointment = factory.appointment(customer, barber, start=time(15, 0), end=time(15, 30))

    response = client.put(
        f"/appointments/{appointment.id}/checkout",
        json={"codCorte": haircut.id, "metodoPago": "Tarjeta"},
        headers=auth_headers(barber),
    )

    assert response.status_code == 200
    assert response.json()["categoriaNueva"] == "Medium"
    # Price uses the tier in force before the promotion
    assert response.json()["turno"]["precioTurno"] == 1000.0


def test_checkout_is_staff_only(client, factory, categories):
    customer = factory.client(category=categories["Inicial"])
    haircut = factory.haircut()
    appointment = factory.appointment(customer, factory.barber())

    response = client.put(
        f"/appointments/{appointment.id}/checkout",
        json={"codCorte": haircut.id, "metodoPago": "Efectivo"},
        headers=auth_headers(customer),
    )

    assert response.status_code == 403


def test_checkout_with_billing_disabled_keeps_payment(client, factory, categories):
    customer = factory.client(category=categories["Inicial"])
    barber = factory.barber()
    haircut = factory.haircut()
    appointment = factory.appointment(customer, barber)

    response = client.put(
        f"/appointments/{appointment.id}/checkout",
        json={"codCorte": haircut.id, "metodoPago": "Efectivo", "facturar": True},
        headers=auth_headers(barber),
    )

    assert response.status_code == 200
    body = response.json()
    assert body["turno"]["estado"] == "Cobrado"
    assert body["errorFacturacion"] == "La facturación electrónica está deshabilitada"


def test_no_show_counts_as_penalty(client, factory, categories):
    customer = factory.client(category=categories["Inicial"])
    barber = factory.barber()
    factory.appointment(customer, barber, start=time(8, 0), end=time(8, 30), status=AppointmentStatus.NO_SHOW)
    factory.appointment(
        customer,
        barber,
        start=time(8, 30),
        end=time(9, 0),
        status=AppointmentStatus.CANCELLED,
        same_day_cancellation=True,
    )
    appointment = factory.appointment(customer, barber, start=time(9, 0), end=time(9, 30))

    response = client.put(f"/appointments/{appointment.id}/no-show", headers=auth_headers(barber))

    assert response.status_code == 200
    assert response.json()["turno"]["estado"] == "No asistido"
    assert response.json()["categoriaNueva"] == "Vetado"


def test_future_appointment_cannot_be_no_show(client, factory, categories):
    customer = factory.client(category=categories["Inicial"])
    barber = factory.barber()
    appointment = factory.appointment(customer, barber, on_date=next_weekday())

    response = client.put(f"/appointments/{appointment.id}/no-show", headers=auth_headers(barber))

    assert response.status_code == 400


def test_admin_deletes_appointment(client, factory, categories, db):
    customer = factory.client(category=categories["Inicial"])
    appointment = factory.appointment(customer, factory.barber(), on_date=next_weekday())
    appointment_id = appointment.id

    response = client.delete(f"/appointments/{appointment_id}", headers=auth_headers(factory.admin()))

    assert response.status_code == 200
    assert response.json()["codTurno"] == appointment_id
    assert db.query(Appointment).filter(Appointment.id == appointment_id).count() == 0


def test_billed_appointment_cannot_be_deleted(client, factory, categories, db):
    customer = factory.client(category=categories["Inicial"])
    appointment = factory.appointment(customer, factory.barber(), status=AppointmentStatus.PAID, price=1000)
    db.add(
        Invoice(
            appointment_id=appointment.id,
            voucher_type=6,
            sales_point=1,
            voucher_number=1,
            cae="74123456789012",
            cae_expiration="2025-03-20",
            total_amount=1000,
            net_amount=826.45,
            vat_amount=173.55,
            doc_type=99,
            issued_on=date.today(),
        )
    )
    db.commit()

    response = client.delete(f"/appointments/{appointment.id}", headers=auth_headers(factory.admin()))

    assert response.status_code == 409


# ============================================================================
# SERVICE LEVEL
# ============================================================================


def test_cancel_on_other_day_skips_demotion(db, factory, categories):
    customer = factory.client(category=categories["Medium"])
    barber = factory.barber()
    day = date.today() + timedelta(days=3)
    for start, end in ((time(8, 0), time(8, 30)), (time(8, 30), time(9, 0)), (time(9, 0), time(9, 30))):
        factory.appointment(customer, barber, on_date=day, start=start, end=end, status=AppointmentStatus.NO_SHOW)
    appointment = factory.appointment(customer, barber, on_date=day, start=time(12, 0), end=time(12, 30))

    result = AppointmentService(db).cancel(appointment.id, customer)

    assert result["categoriaNueva"] is None
    assert result["turno"].same_day_cancellation is False
