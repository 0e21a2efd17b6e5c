import json

import pytest
from sqlmodel import select

from cms.models import Abastecimento, Freight, OutrosInsumo, Payment, RecordStatus
from cms.services.payment_service import PaymentService


def make_records(session, driver):
    freights = [
        Freight(driver_id=driver.id, date="2025-03-0%d" % day, km=100, tons=10, price_per_km_ton=1,
                total_value=1000, client="Transportes XYZ", status=RecordStatus.COMPLETE)
        for day in (1, 2, 3)
    ]
    fuel = Abastecimento(driver_id=driver.id, date="2025-03-02", quantity=100, price_per_liter=6,
                         total_value=600, status=RecordStatus.COMPLETE)
    misc = OutrosInsumo(driver_id=driver.id, date="2025-03-02", quantity=1, unit_price=50,
                        total_value=50, status=RecordStatus.COMPLETE)
    session.add_all(freights + [fuel, misc])
    session.commit()
    for record in freights + [fuel, misc]:
        session.refresh(record)
    return freights, fuel, misc


def payment_form(driver_id, freight_ids=(), abastecimento_ids=(), outros_insumo_ids=()):
    return {
        "driver_id": str(driver_id),
        "date_range": "01/03/2025 - 15/03/2025",
        "total_value": "1350",
        "freight_ids": json.dumps(list(freight_ids)),
        "abastecimento_ids": json.dumps(list(abastecimento_ids)),
        "outros_insumo_ids": json.dumps(list(outros_insumo_ids)),
    }


def test_create_payment_marks_exactly_referenced_items(client, admin_headers, session, driver):
    freights, fuel, misc = make_records(session, driver)
    a, b, c = freights

    response = client.post(
        "/api/admin/payments/",
        data=payment_form(driver.id, [a.id, b.id], [fuel.id], [misc.id]),
        headers=admin_headers
    )
    assert response.status_code == 201
    body = response.json()
    assert body["freight_ids"] == [a.id, b.id]
    assert body["driver_name"] == driver.name
    assert body["driver_plate"] == "ABC-1234"

    for record in (a, b, c, fuel, misc):
        session.refresh(record)
    assert a.paid and b.paid
    assert not c.paid
    assert fuel.paid and misc.paid


def test_delete_payment_resets_flags(client, admin_headers, session, driver):
    freights, fuel, misc = make_records(session, driver)
    a, b, _ = freights
    payment = client.post(
        "/api/admin/payments/",
        data=payment_form(driver.id, [a.id, b.id], [fuel.id], [misc.id]),
        headers=admin_headers
    ).json()

    response = client.delete(f"/api/admin/payments/{payment['id']}", headers=admin_headers)
    assert response.status_code == 200

    for record in (a, b, fuel, misc):
        session.refresh(record)
        assert record.paid is False
    assert session.get(Payment, payment["id"]) is None


def test_unknown_ids_are_skipped(client, admin_headers, session, driver):
    freights, _, _ = make_records(session, driver)
    response = client.post(
        "/api/admin/payments/",
        data=payment_form(driver.id, [freights[0].id, 9999]),
        headers=admin_headers
    )
    assert response.status_code == 201
    session.refresh(freights[0])
    assert freights[0].paid


def test_malformed_id_list_is_rejected(client, admin_headers, session, driver):
    freights, _, _ = make_records(session, driver)
    form = payment_form(driver.id)
    form["freight_ids"] = "[1, 2"

    response = client.post("/api/admin/payments/", data=form, headers=admin_headers)
    assert response.status_code == 400
    assert session.exec(select(Payment)).all() == []


def test_missing_fields_are_rejected(client, admin_headers, driver):
    response = client.post(
        "/api/admin/payments/", data={"driver_id": str(driver.id)}, headers=admin_headers)
    assert response.status_code == 400


def test_non_positive_total_is_rejected(client, admin_headers, session, driver):
    for value in ("0", "-100"):
        form = dict(payment_form(driver.id), total_value=value)
        response = client.post("/api/admin/payments/", data=form, headers=admin_headers)
        assert response.status_code == 400
    assert session.exec(select(Payment)).all() == []


def test_payment_for_unknown_driver(client, admin_headers):
    response = client.post("/api/admin/payments/", data=payment_form(9999), headers=admin_headers)
    assert response.status_code == 404


def test_list_and_get_payments(client, admin_headers, session, driver):
    freights, _, _ = make_records(session, driver)
    created = client.post(
        "/api/admin/payments/", data=payment_form(driver.id, [freights[0].id]), headers=admin_headers).json()

    listed = client.get("/api/admin/payments/", params={"driver_id": driver.id}, headers=admin_headers)
    assert [p["id"] for p in listed.json()] == [created["id"]]

    fetched = client.get(f"/api/admin/payments/{created['id']}", headers=admin_headers)
    assert fetched.json()["total_value"] == pytest.approx(1350)
    assert client.get("/api/admin/payments/9999", headers=admin_headers).status_code == 404


def test_replace_payment_comprovante(client, admin_headers, session, driver):
    created = client.post("/api/admin/payments/", data=payment_form(driver.id), headers=admin_headers).json()

    response = client.put(
        f"/api/admin/payments/{created['id']}",
        files={"comprovante": ("recibo.pdf", b"%PDF-1.4", "application/pdf")},
        headers=admin_headers
    )
    assert response.status_code == 200
    assert response.json()["comprovante_path"].startswith("/static/uploads/comprovantes/payment-")


def test_failed_settlement_rolls_back_payment_and_flags(session, driver, monkeypatch):
    freights, fuel, misc = make_records(session, driver)
    original_get = session.get

    def failing_get(model, ident, *args, **kwargs):
        if model is OutrosInsumo:
            raise RuntimeError("database unavailable")
        return original_get(model, ident, *args, **kwargs)

    monkeypatch.setattr(session, "get", failing_get)
    with pytest.raises(RuntimeError):
        PaymentService(session).create_payment(
            driver_id=driver.id,
            date_range="01/03/2025 - 15/03/2025",
            total_value=1650,
            freight_ids=[f.id for f in freights],
            abastecimento_ids=[fuel.id],
            outros_insumo_ids=[misc.id],
        )
    monkeypatch.undo()

    assert session.exec(select(Payment)).all() == []
    for record in freights + [fuel, misc]:
        session.refresh(record)
        assert record.paid is False
