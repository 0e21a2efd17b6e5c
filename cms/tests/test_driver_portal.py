from datetime import date

import pytest
from sqlmodel import select

from cms.models import Abastecimento, Driver, Freight, OutrosInsumo, RecordStatus
from cms.services.comprovante_service import ABASTECIMENTO, CARGA, DESCARGA, ComprovantePool

IMAGE = ("comprovante.jpg", b"\xff\xd8\xff\xe0fake-jpeg", "image/jpeg")


def test_profile_hides_driver_rate(client, driver_headers, driver):
    response = client.get("/api/driver/profile", headers=driver_headers)
    assert response.status_code == 200
    body = response.json()
    assert body["name"] == driver.name
    assert "price_per_km_ton" not in body
    assert "password" not in body


def test_driver_routes_reject_other_roles(client, admin_headers):
    assert client.get("/api/driver/profile", headers=admin_headers).status_code == 401


def test_add_and_remove_plates(client, driver_headers, session, driver):
    response = client.post("/api/driver/plates", json={"plate": "def-5g67"}, headers=driver_headers)
    assert response.status_code == 201
    assert response.json()["plates"] == ["ABC-1234", "DEF-5G67"]

    assert client.post("/api/driver/plates", json={"plate": "DEF-5G67"}, headers=driver_headers).status_code == 409
    assert client.post("/api/driver/plates", json={"plate": "DEF5G67"}, headers=driver_headers).status_code == 400
    assert client.post("/api/driver/plates", json={}, headers=driver_headers).status_code == 400

    session.refresh(driver)
    assert driver.plates == ["ABC-1234", "DEF-5G67"]

    removed = client.delete("/api/driver/plates/DEF-5G67", headers=driver_headers)
    assert removed.json()["plates"] == ["ABC-1234"]
    assert client.delete("/api/driver/plates/ZZZ-0000", headers=driver_headers).status_code == 404


def test_stats(client, driver_headers, session, driver):
    session.add_all([
        Freight(driver_id=driver.id, date="2025-03-01", km=100, tons=10, price_per_km_ton=1,
                total_value=1000, client="X", status=RecordStatus.COMPLETE, paid=True),
        Freight(driver_id=driver.id, date="2025-03-02", km=200, tons=10, price_per_km_ton=1,
                total_value=2000, client="X", status=RecordStatus.COMPLETE),
        Freight(driver_id=driver.id, date="2025-03-03", total_value=0, status=RecordStatus.PENDING),
        Abastecimento(driver_id=driver.id, date="2025-03-02", quantity=50, price_per_liter=6,
                      total_value=300, status=RecordStatus.COMPLETE),
        Abastecimento(driver_id=driver.id, date="2025-03-02", quantity=50, price_per_liter=6,
                      total_value=300, status=RecordStatus.COMPLETE, paid=True),
        OutrosInsumo(driver_id=driver.id, date="2025-03-02", quantity=2, unit_price=25,
                     total_value=50, status=RecordStatus.COMPLETE),
    ])
    session.commit()

    stats = client.get("/api/driver/stats", headers=driver_headers).json()
    assert stats["freights"]["count"] == 2
    assert stats["freights"]["total_km"] == pytest.approx(300)
    assert stats["freights"]["total_value"] == pytest.approx(3000)
    assert stats["abastecimentos"]["total_liters"] == pytest.approx(100)
    assert stats["outros_insumos"]["total_value"] == pytest.approx(50)
    assert stats["total_received"] == pytest.approx(1000)
    assert stats["total_to_receive"] == pytest.approx(3000 - 1000 - 600 - 50)


def test_paid_fuel_still_reduces_amount_to_receive(client, driver_headers, session, driver):
    session.add_all([
        Freight(driver_id=driver.id, date="2025-03-01", km=100, tons=10, price_per_km_ton=1,
                total_value=1000, client="X", status=RecordStatus.COMPLETE),
        Abastecimento(driver_id=driver.id, date="2025-03-02", quantity=50, price_per_liter=6,
                      total_value=300, status=RecordStatus.COMPLETE, paid=True),
    ])
    session.commit()

    stats = client.get("/api/driver/stats", headers=driver_headers).json()
    assert stats["total_to_receive"] == pytest.approx(700)


def test_freights_only_show_own_records(client, driver_headers, session, driver):
    other = Driver(name="Outro", plates=["OUT-1234"], price_per_km_ton=1)
    session.add(other)
    session.commit()
    session.add_all([
        Freight(driver_id=driver.id, date="2025-03-01", km=10, tons=1, total_value=10),
        Freight(driver_id=other.id, date="2025-03-01", km=10, tons=1, total_value=10),
    ])
    session.commit()

    body = client.get("/api/driver/freights", headers=driver_headers).json()
    assert [f["driver_id"] for f in body["freights"]] == [driver.id]
    assert body["stats"]["total_freights"] == 1


def test_upload_carga_creates_pending_freight(client, driver_headers, session, driver):
    response = client.post(
        "/api/driver/upload-comprovante", files={"comprovante_carga": IMAGE}, headers=driver_headers)
    assert response.status_code == 201
    body = response.json()

    freight = session.get(Freight, body["freight_id"])
    assert freight.status == RecordStatus.PENDING
    assert freight.date == date.today().isoformat()
    assert freight.comprovante_carga == body["comprovante_carga"]
    assert body["comprovante_carga"].startswith(f"/static/uploads/comprovantes/driver-{driver.id}-carga-")

    receipt = ComprovantePool(session, CARGA).find_by_target(freight.id)
    assert receipt.file_path == body["comprovante_carga"]


def test_upload_descarga_goes_to_pool(client, driver_headers, session, driver):
    response = client.post(
        "/api/driver/upload-comprovante", files={"comprovante_descarga": IMAGE}, headers=driver_headers)
    assert response.status_code == 201

    pool = ComprovantePool(session, DESCARGA).list_unassigned()
    assert [r.id for r in pool] == [response.json()["comprovante_descarga_id"]]
    assert session.exec(select(Freight)).all() == []


def test_upload_without_files(client, driver_headers):
    assert client.post("/api/driver/upload-comprovante", headers=driver_headers).status_code == 400
    assert client.post("/api/driver/upload-comprovante-abastecimento", headers=driver_headers).status_code == 400


def test_upload_rejects_other_extensions(client, driver_headers):
    response = client.post(
        "/api/driver/upload-comprovante",
        files={"comprovante_carga": ("nota.txt", b"texto", "text/plain")},
        headers=driver_headers
    )
    assert response.status_code == 400


def test_upload_abastecimento_creates_pending_record(client, driver_headers, session, driver):
    response = client.post(
        "/api/driver/upload-comprovante-abastecimento",
        files={"comprovante_abastecimento": IMAGE},
        headers=driver_headers
    )
    assert response.status_code == 201

    abastecimento = session.get(Abastecimento, response.json()["abastecimento_id"])
    assert abastecimento.status == RecordStatus.PENDING
    assert abastecimento.total_value == 0
    assert ComprovantePool(session, ABASTECIMENTO).find_by_target(abastecimento.id) is not None


def test_driver_payments(client, driver_headers, admin_headers, driver):
    client.post(
        "/api/admin/payments/",
        data={"driver_id": str(driver.id), "date_range": "março", "total_value": "100"},
        headers=admin_headers
    )
    payments = client.get("/api/driver/payments", headers=driver_headers).json()
    assert len(payments) == 1
    assert payments[0]["date_range"] == "março"


def test_deleting_freight_removes_uploaded_receipt_file(client, driver_headers, admin_headers, tmp_path):
    body = client.post(
        "/api/driver/upload-comprovante", files={"comprovante_carga": IMAGE}, headers=driver_headers).json()
    filename = body["comprovante_carga"].rsplit("/", 1)[-1]
    stored = tmp_path / "comprovantes" / filename
    assert stored.exists()

    response = client.delete(f"/api/admin/freights/{body['freight_id']}", headers=admin_headers)
    assert response.status_code == 200
    assert not stored.exists()
