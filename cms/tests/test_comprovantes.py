import pytest

from cms.models import Driver, Freight
from cms.services.comprovante_service import CARGA, DESCARGA, ComprovantePool
from cms.services.freight_service import FreightService


def make_freight(session, driver, date="2025-03-10"):
    freight = Freight(driver_id=driver.id, date=date, plate=driver.plate)
    session.add(freight)
    session.commit()
    session.refresh(freight)
    return freight


def test_labels_number_receipts_of_same_driver_and_date(session, driver):
    pool = ComprovantePool(session, DESCARGA)
    first = pool.submit(driver.id, "/static/uploads/a.jpg", "2025-03-10")
    second = pool.submit(driver.id, "/static/uploads/b.jpg", "2025-03-10")
    third = pool.submit(driver.id, "/static/uploads/c.jpg", "2025-03-10")
    single = pool.submit(driver.id, "/static/uploads/d.jpg", "2025-03-11")

    receipts = pool.list_unassigned()
    labels = {r.id: r.display_name for r in receipts}

    assert [r.id for r in receipts] == [single.id, third.id, second.id, first.id]
    assert labels[single.id] == "João Silva - 11/03/2025"
    assert labels[first.id] == "João Silva - 10/03/2025 - 1"
    assert labels[second.id] == "João Silva - 10/03/2025 - 2"
    assert labels[third.id] == "João Silva - 10/03/2025 - 3"


def test_labels_are_recomputed_after_assignment(session, driver):
    pool = ComprovantePool(session, DESCARGA)
    first = pool.submit(driver.id, "/static/uploads/a.jpg", "2025-03-10")
    second = pool.submit(driver.id, "/static/uploads/b.jpg", "2025-03-10")
    freight = make_freight(session, driver)

    pool.assign(first.id, freight.id)

    receipts = pool.list_unassigned()
    assert [r.id for r in receipts] == [second.id]
    assert receipts[0].display_name == "João Silva - 10/03/2025"


def test_assign_sets_target_file_column(session, driver):
    pool = ComprovantePool(session, DESCARGA)
    receipt = pool.submit(driver.id, "/static/uploads/a.jpg", "2025-03-10")
    freight = make_freight(session, driver)

    result = pool.assign(receipt.id, freight.id)

    assert result.assigned_to == freight.id
    session.refresh(freight)
    assert freight.comprovante_descarga == "/static/uploads/a.jpg"


def test_receipt_cannot_be_assigned_twice(session, driver):
    pool = ComprovantePool(session, DESCARGA)
    receipt = pool.submit(driver.id, "/static/uploads/a.jpg", "2025-03-10")
    freight_a = make_freight(session, driver)
    freight_b = make_freight(session, driver)

    assert pool.assign(receipt.id, freight_a.id) is not None
    assert pool.assign(receipt.id, freight_b.id) is None

    session.refresh(freight_b)
    assert freight_b.comprovante_descarga is None
    assert pool.find_by_target(freight_a.id).id == receipt.id


def test_unassign_returns_receipt_to_pool(session, driver):
    pool = ComprovantePool(session, DESCARGA)
    receipt = pool.submit(driver.id, "/static/uploads/a.jpg", "2025-03-10")
    freight = make_freight(session, driver)
    pool.assign(receipt.id, freight.id)

    pool.unassign(freight.id)

    session.refresh(freight)
    assert freight.comprovante_descarga is None
    assert [r.id for r in pool.list_unassigned()] == [receipt.id]


def test_assign_endpoint_replaces_previous_receipt(client, admin_headers, session, driver):
    pool = ComprovantePool(session, DESCARGA)
    old = pool.submit(driver.id, "/static/uploads/old.jpg", "2025-03-10")
    new = pool.submit(driver.id, "/static/uploads/new.jpg", "2025-03-10")
    freight = make_freight(session, driver)
    pool.assign(old.id, freight.id)

    response = client.post(
        f"/api/admin/comprovantes-descarga/{new.id}/assign",
        json={"freight_id": freight.id},
        headers=admin_headers
    )
    assert response.status_code == 200
    assert response.json()["assigned_to"] == freight.id

    session.refresh(freight)
    assert freight.comprovante_descarga == "/static/uploads/new.jpg"
    assert [r.id for r in pool.list_unassigned()] == [old.id]


def test_assign_endpoint_already_assigned_receipt(client, admin_headers, session, driver):
    pool = ComprovantePool(session, DESCARGA)
    receipt = pool.submit(driver.id, "/static/uploads/a.jpg", "2025-03-10")
    freight_a = make_freight(session, driver)
    freight_b = make_freight(session, driver)
    pool.assign(receipt.id, freight_a.id)

    response = client.post(
        f"/api/admin/comprovantes-descarga/{receipt.id}/assign",
        json={"freight_id": freight_b.id},
        headers=admin_headers
    )
    assert response.status_code == 404
    session.refresh(freight_a)
    assert freight_a.comprovante_descarga == "/static/uploads/a.jpg"


def test_assign_endpoint_missing_target(client, admin_headers, session, driver):
    receipt = ComprovantePool(session, DESCARGA).submit(driver.id, "/static/uploads/a.jpg", "2025-03-10")
    response = client.post(
        f"/api/admin/comprovantes-descarga/{receipt.id}/assign",
        json={"freight_id": 9999},
        headers=admin_headers
    )
    assert response.status_code == 404


def test_list_endpoint_and_unknown_kind(client, admin_headers, session, driver):
    ComprovantePool(session, CARGA).submit(driver.id, "/static/uploads/a.jpg", "2025-03-10")

    response = client.get("/api/admin/comprovantes-carga", headers=admin_headers)
    assert response.status_code == 200
    assert response.json()[0]["display_name"] == "João Silva - 10/03/2025"
    assert client.get("/api/admin/comprovantes-outro", headers=admin_headers).status_code == 404


def test_deleting_freight_removes_assigned_receipts(session, driver):
    freight = FreightService(session).create_pending(driver.id, "2025-03-10", "/static/uploads/a.jpg")
    pool = ComprovantePool(session, CARGA)
    assert pool.find_by_target(freight.id) is not None

    FreightService(session).delete_freight(freight.id)

    assert pool.find_by_target(freight.id) is None
    assert pool.list_unassigned() == []
    assert session.get(Driver, driver.id) is not None


def test_failed_reassign_keeps_previous_receipt(session, driver, monkeypatch):
    pool = ComprovantePool(session, DESCARGA)
    old = pool.submit(driver.id, "/static/uploads/old.jpg", "2025-03-10")
    new = pool.submit(driver.id, "/static/uploads/new.jpg", "2025-03-10")
    freight = make_freight(session, driver)
    pool.assign(old.id, freight.id)

    def broken_claim(receipt_id, target_id):
        raise RuntimeError("database unavailable")

    monkeypatch.setattr(pool, "_claim", broken_claim)
    with pytest.raises(RuntimeError):
        pool.reassign(new.id, freight.id)
    monkeypatch.undo()

    assert pool.find_by_target(freight.id).id == old.id
    assert [r.id for r in pool.list_unassigned()] == [new.id]
    session.refresh(freight)
    assert freight.comprovante_descarga == "/static/uploads/old.jpg"
