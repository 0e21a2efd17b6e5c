from cms.models import Driver, Freight


def make_freight(session, driver_id):
    freight = Freight(driver_id=driver_id, date="2025-03-10")
    session.add(freight)
    session.commit()
    session.refresh(freight)
    return freight


def test_location_upsert_keeps_single_row(client, driver_headers):
    first = client.post("/api/driver/location", json={"latitude": -23.5, "longitude": -46.6}, headers=driver_headers)
    assert first.status_code == 200
    second = client.post("/api/driver/location", json={"latitude": -22.9, "longitude": -43.2}, headers=driver_headers)
    assert second.json()["location"]["latitude"] == -22.9


def test_location_rejects_out_of_range_coordinates(client, driver_headers):
    response = client.post("/api/driver/location", json={"latitude": 91, "longitude": 0}, headers=driver_headers)
    assert response.status_code == 400
    response = client.post("/api/driver/location", json={"latitude": 0, "longitude": -181}, headers=driver_headers)
    assert response.status_code == 400


def test_tracking_lifecycle(client, driver_headers, session, driver):
    freight = make_freight(session, driver.id)
    client.post("/api/driver/location", json={"latitude": -23.5, "longitude": -46.6}, headers=driver_headers)

    assert client.get("/api/driver/tracking-status", headers=driver_headers).json()["tracking"] is False

    started = client.post(f"/api/driver/start-tracking/{freight.id}", headers=driver_headers)
    assert started.status_code == 200
    session.refresh(freight)
    assert freight.tracking_enabled is True

    status = client.get("/api/driver/tracking-status", headers=driver_headers).json()
    assert status["tracking"] is True
    assert status["freight_id"] == freight.id

    client.post("/api/driver/stop-tracking", headers=driver_headers)
    session.refresh(freight)
    assert freight.tracking_enabled is False
    assert client.get("/api/driver/tracking-status", headers=driver_headers).json()["tracking"] is False


def test_start_tracking_requires_own_freight(client, driver_headers, session):
    other = Driver(name="Outro", plates=["OUT-1234"], price_per_km_ton=1)
    session.add(other)
    session.commit()
    freight = make_freight(session, other.id)

    assert client.post(f"/api/driver/start-tracking/{freight.id}", headers=driver_headers).status_code == 403
    assert client.post("/api/driver/start-tracking/9999", headers=driver_headers).status_code == 404
