from datetime import datetime, timedelta

from barbershop.domain.categories.loyalty import LoyaltyService
from barbershop.models import Category

from conftest import auth_headers

GOLD = {
    "nombreCategoria": "Gold",
    "descCategoria": "Clientes con beneficios especiales",
    "descuentoCorte": 15,
    "descuentoProducto": 20,
}


def test_admin_creates_category(client, factory):
    response = client.post("/categories", json=GOLD, headers=auth_headers(factory.admin()))

    assert response.status_code == 201
    body = response.json()
    assert body["nombreCategoria"] == "Gold"
    assert body["descuentoCorte"] == 15


def test_barber_cannot_create_category(client, factory):
    response = client.post("/categories", json=GOLD, headers=auth_headers(factory.barber()))

    assert response.status_code == 403


def test_duplicate_category_name(client, factory, categories):
    payload = dict(GOLD, nombreCategoria="Premium")

    response = client.post("/categories", json=payload, headers=auth_headers(factory.admin()))

    assert response.status_code == 409


def test_category_validation(client, factory):
    admin = factory.admin()

    short = client.post("/categories", json=dict(GOLD, descCategoria="corta"), headers=auth_headers(admin))
    digits = client.post("/categories", json=dict(GOLD, nombreCategoria="Gold2"), headers=auth_headers(admin))
    discount = client.post("/categories", json=dict(GOLD, descuentoCorte=120), headers=auth_headers(admin))

    assert short.status_code == 422
    assert digits.status_code == 422
    assert discount.status_code == 422


def test_update_category(client, factory, categories):
    response = client.put(
        f"/categories/{categories['Medium'].id}",
        json={"descuentoCorte": 7.5},
        headers=auth_headers(factory.admin()),
    )

    assert response.status_code == 200
    assert response.json()["descuentoCorte"] == 7.5
    assert response.json()["nombreCategoria"] == "Medium"


def test_list_categories_requires_login(client, factory, categories):
    assert client.get("/categories").status_code == 401

    response = client.get("/categories", headers=auth_headers(factory.client()))

    assert response.status_code == 200
    assert {c["nombreCategoria"] for c in response.json()} == {"Inicial", "Medium", "Premium", "Vetado"}


def test_unknown_category(client, factory):
    response = client.get("/categories/missing", headers=auth_headers(factory.admin()))

    assert response.status_code == 404


def test_delete_unused_category(client, factory, db):
    gold = Category(name="Gold", description="Clientes con beneficios especiales")
    db.add(gold)
    db.commit()

    response = client.delete(f"/categories/{gold.id}", headers=auth_headers(factory.admin()))

    assert response.status_code == 200
    assert response.json()["nombreCategoria"] == "Gold"
    assert db.query(Category).filter(Category.name == "Gold").count() == 0


def test_delete_category_in_use(client, factory, categories):
    factory.client(category=categories["Medium"])

    response = client.delete(f"/categories/{categories['Medium'].id}", headers=auth_headers(factory.admin()))

    assert response.status_code == 409


def test_clients_for_category(client, factory, categories):
    medium = factory.client(category=categories["Medium"], first_name="Lucia")
    moved = factory.client(category=categories["Medium"], started_at=datetime(2025, 1, 1, 9, 0))
    factory.assign(moved, categories["Premium"], datetime(2025, 2, 1, 9, 0))
    factory.appointment(medium, factory.barber())

    response = client.get(f"/categories/{categories['Medium'].id}/clients", headers=auth_headers(factory.admin()))

    assert response.status_code == 200
    body = response.json()
    assert body["categoria"]["nombreCategoria"] == "Medium"
    assert [c["codCliente"] for c in body["clientes"]] == [medium.id]
    assert body["clientes"][0]["nombre"] == "Lucia"
    assert body["clientes"][0]["stats"] == {"total": 1, "cancelados": 0}


def test_delete_with_reassignment_promote_all(client, factory, categories, db):
    first = factory.client(category=categories["Medium"])
    second = factory.client(category=categories["Medium"])

    response = client.post(
        f"/categories/{categories['Medium'].id}/delete-with-reassignment",
        json={"action": "promote_all"},
        headers=auth_headers(factory.admin()),
    )

    assert response.status_code == 200
    assert response.json()["reassignedCount"] == 2
    loyalty = LoyaltyService(db)
    assert loyalty.current_category(first.id).name == "Premium"
    assert loyalty.current_category(second.id).name == "Premium"
    assert db.query(Category).filter(Category.name == "Medium").count() == 0


def test_delete_with_reassignment_per_client(client, factory, categories, db):
    up = factory.client(category=categories["Medium"])
    down = factory.client(category=categories["Medium"])

    response = client.post(
        f"/categories/{categories['Medium'].id}/delete-with-reassignment",
        json={
            "action": "per_client",
            "perClient": [
                {"codCliente": up.id, "decision": "promote"},
                {"codCliente": down.id, "decision": "demote"},
            ],
        },
        headers=auth_headers(factory.admin()),
    )

    assert response.status_code == 200
    loyalty = LoyaltyService(db)
    assert loyalty.current_category(up.id).name == "Premium"
    assert loyalty.current_category(down.id).name == "Inicial"


def test_delete_with_reassignment_missing_decision(client, factory, categories):
    up = factory.client(category=categories["Medium"])
    factory.client(category=categories["Medium"])

    response = client.post(
        f"/categories/{categories['Medium'].id}/delete-with-reassignment",
        json={"action": "per_client", "perClient": [{"codCliente": up.id, "decision": "promote"}]},
        headers=auth_headers(factory.admin()),
    )

    assert response.status_code == 400
    assert response.json()["detail"] == "Faltan decisiones para algunos clientes"


def test_delete_with_reassignment_requires_action(client, factory, categories):
    factory.client(category=categories["Medium"])

    response = client.post(
        f"/categories/{categories['Medium'].id}/delete-with-reassignment",
        json={},
        headers=auth_headers(factory.admin()),
    )

    assert response.status_code == 400


def test_top_tier_cannot_be_promoted_away(client, factory, categories):
    factory.client(category=categories["Premium"])

    response = client.post(
        f"/categories/{categories['Premium'].id}/delete-with-reassignment",
        json={"action": "promote_all"},
        headers=auth_headers(factory.admin()),
    )

    assert response.status_code == 400
    assert response.json()["detail"] == "No se puede subir la categoría Premium"


def test_manual_assignment_and_history(client, factory, categories):
    customer = factory.client(category=categories["Inicial"], started_at=datetime(2025, 1, 1, 9, 0))
    admin = factory.admin()

    assigned = client.post(
        "/categories/assign",
        json={"codCliente": customer.id, "codCategoria": categories["Premium"].id},
        headers=auth_headers(admin),
    )
    history = client.get(f"/categories/clients/{customer.id}/history", headers=auth_headers(customer))

    assert assigned.status_code == 201
    assert history.status_code == 200
    assert [h["nombreCategoria"] for h in history.json()] == ["Premium", "Inicial"]


def test_history_of_other_client_is_forbidden(client, factory, categories):
    customer = factory.client(category=categories["Inicial"])
    other = factory.client(category=categories["Inicial"])

    response = client.get(f"/categories/clients/{other.id}/history", headers=auth_headers(customer))

    assert response.status_code == 403


def test_staff_cannot_get_a_tier(client, factory, categories):
    barber = factory.barber()

    response = client.post(
        "/categories/assign",
        json={"codCliente": barber.id, "codCategoria": categories["Premium"].id},
        headers=auth_headers(factory.admin()),
    )

    assert response.status_code == 404


def test_manual_assignment_lands_after_a_later_tier_row(client, factory, categories, db):
    # Automatic transitions can stamp a row later than the current clock
    customer = factory.client(category=categories["Inicial"], started_at=datetime.now() + timedelta(hours=2))

    response = client.post(
        "/categories/assign",
        json={"codCliente": customer.id, "codCategoria": categories["Premium"].id},
        headers=auth_headers(factory.admin()),
    )

    assert response.status_code == 201
    assert LoyaltyService(db).current_category(customer.id).name == "Premium"


def test_reassignment_lands_after_a_later_tier_row(client, factory, categories, db):
    customer = factory.client(category=categories["Medium"], started_at=datetime.now() + timedelta(hours=2))

    response = client.post(
        f"/categories/{categories['Medium'].id}/delete-with-reassignment",
        json={"action": "demote_all"},
        headers=auth_headers(factory.admin()),
    )

    assert response.status_code == 200
    assert LoyaltyService(db).current_category(customer.id).name == "Inicial"
