import pytest

from cms.models import DriverLocation, Freight, RecordStatus


def add_freight(session, driver, client_name, date="2025-03-10", **kwargs):
    freight = Freight(driver_id=driver.id, date=date, client=client_name, km=100, tons=10,
                      price_per_km_ton=1, total_value=1000, **kwargs)
    session.add(freight)
    session.commit()
    session.refresh(freight)
    return freight


def test_profile(client, cliente_headers, cliente):
    body = client.get("/api/cliente/profile", headers=cliente_headers).json()
    assert body["empresa"] == "Transportes XYZ"
    assert "password" not in body


def test_freights_match_company_case_insensitively(client, cliente_headers, session, driver):
    add_freight(session, driver, "transportes xyz", date="2025-03-01")
    add_freight(session, driver, "Transportes XYZ", date="2025-03-20")
    add_freight(session, driver, "Outra Empresa")

    body = client.get("/api/cliente/freights", headers=cliente_headers).json()
    assert len(body["freights"]) == 2
    assert body["stats"]["total_value"] == pytest.approx(2000)
    assert body["stats"]["total_km"] == pytest.approx(200)

    filtered = client.get(
        "/api/cliente/freights", params={"date_from": "2025-03-15"}, headers=cliente_headers).json()
    assert [f["date"] for f in filtered["freights"]] == ["2025-03-20"]


def test_stats(client, cliente_headers, session, driver):
    add_freight(session, driver, "Transportes XYZ")
    stats = client.get("/api/cliente/stats", headers=cliente_headers).json()
    assert stats["total_freights"] == 1
    assert stats["total_tons"] == pytest.approx(10)


def test_active_freights_with_location(client, cliente_headers, session, driver):
    tracked = add_freight(session, driver, "Transportes XYZ", status=RecordStatus.PENDING, tracking_enabled=True)
    add_freight(session, driver, "Transportes XYZ", status=RecordStatus.PENDING)
    session.add(DriverLocation(driver_id=driver.id, latitude=-23.5, longitude=-46.6, freight_id=tracked.id))
    session.commit()

    body = client.get("/api/cliente/active-freights", headers=cliente_headers).json()
    assert [f["id"] for f in body] == [tracked.id]
    assert body[0]["location"]["latitude"] == pytest.approx(-23.5)
    assert body[0]["driver"]["plate"] == "ABC-1234"


def test_freight_location_ownership(client, cliente_headers, session, driver):
    own = add_freight(session, driver, "Transportes XYZ", tracking_enabled=True)
    other = add_freight(session, driver, "Outra Empresa")

    no_location = client.get(f"/api/cliente/freight/{own.id}/location", headers=cliente_headers).json()
    assert no_location["tracking"] is False

    session.add(DriverLocation(driver_id=driver.id, latitude=-23.5, longitude=-46.6, freight_id=own.id))
    session.commit()
    located = client.get(f"/api/cliente/freight/{own.id}/location", headers=cliente_headers).json()
    assert located["tracking"] is True
    assert located["location"]["longitude"] == pytest.approx(-46.6)

    assert client.get(f"/api/cliente/freight/{other.id}/location", headers=cliente_headers).status_code == 403
    assert client.get("/api/cliente/freight/9999/location", headers=cliente_headers).status_code == 404


def test_cliente_routes_reject_driver_token(client, driver_headers):
    assert client.get("/api/cliente/profile", headers=driver_headers).status_code == 401
