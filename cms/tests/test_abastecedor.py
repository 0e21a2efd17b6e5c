from cms.models import Abastecimento, Driver, OutrosInsumo, RecordStatus
from cms.services.comprovante_service import ABASTECIMENTO, ComprovantePool


def add_driver(session, name, plates, authenticated=True, active=True):
    driver = Driver(name=name, plates=plates, price_per_km_ton=1, authenticated=authenticated, active=active)
    session.add(driver)
    session.commit()
    session.refresh(driver)
    return driver


def test_admin_abastecedor_crud(client, admin_headers):
    created = client.post(
        "/api/admin/abastecedores/",
        json={"name": "Carlos", "cpf": "529.982.247-25", "password": "1234"},
        headers=admin_headers
    )
    assert created.status_code == 201
    body = created.json()
    assert body["cpf"] == "52998224725"
    assert "password" not in body

    duplicate = client.post(
        "/api/admin/abastecedores/",
        json={"name": "Outro", "cpf": "52998224725", "password": "1234"},
        headers=admin_headers
    )
    assert duplicate.status_code == 409

    invalid = client.post(
        "/api/admin/abastecedores/",
        json={"name": "Outro", "cpf": "52998224724", "password": "1234"},
        headers=admin_headers
    )
    assert invalid.status_code == 400

    updated = client.put(
        f"/api/admin/abastecedores/{body['id']}", json={"phone": "11999998888"}, headers=admin_headers)
    assert updated.json()["phone"] == "11999998888"

    client.delete(f"/api/admin/abastecedores/{body['id']}", headers=admin_headers)
    assert client.get(f"/api/admin/abastecedores/{body['id']}", headers=admin_headers).json()["active"] is False


def test_drivers_plate_map(client, abastecedor_headers, session):
    add_driver(session, "Ana", ["BBB-2222", "SHR-0001"])
    add_driver(session, "Bruno", ["AAA-1111", "SHR-0001"])
    add_driver(session, "Sem autenticação", ["CCC-3333"], authenticated=False)
    add_driver(session, "Inativo", ["DDD-4444"], active=False)

    body = client.get("/api/abastecedor/drivers", headers=abastecedor_headers).json()

    assert [p["plate"] for p in body["plates"]] == ["AAA-1111", "BBB-2222", "SHR-0001"]
    shared = body["plates"][2]
    assert shared["multipleDrivers"] is True
    assert sorted(d["name"] for d in shared["drivers"]) == ["Ana", "Bruno"]
    assert sorted(d["name"] for d in body["drivers"]) == ["Ana", "Bruno"]


def test_validate_plate_and_drivers_by_plate(client, abastecedor_headers, session):
    add_driver(session, "Ana", ["BBB-2222"])

    assert client.get("/api/abastecedor/validate-plate/bbb-2222", headers=abastecedor_headers).json()["valid"]
    assert not client.get("/api/abastecedor/validate-plate/ZZZ-9999", headers=abastecedor_headers).json()["valid"]

    found = client.get("/api/abastecedor/drivers-by-plate/BBB-2222", headers=abastecedor_headers)
    assert found.json()["drivers"][0]["name"] == "Ana"
    assert client.get("/api/abastecedor/drivers-by-plate/ZZZ-9999", headers=abastecedor_headers).status_code == 404


def test_register_abastecimento_by_plate(client, abastecedor_headers, abastecedor, session):
    driver = add_driver(session, "Ana", ["BBB-2222"])

    response = client.post(
        "/api/abastecedor/abastecimento",
        data={"plate": "bbb-2222", "date": "2025-03-10", "liters": "120"},
        files={"comprovante": ("bomba.png", b"\x89PNGfake", "image/png")},
        headers=abastecedor_headers
    )
    assert response.status_code == 201
    record = response.json()["abastecimento"]
    assert record["driver_id"] == driver.id
    assert record["quantity"] == 120
    assert record["price_per_liter"] == 0
    assert record["status"] == "pending"

    stored = session.get(Abastecimento, record["id"])
    assert stored.abastecedor_id == abastecedor.id
    assert ComprovantePool(session, ABASTECIMENTO).find_by_target(stored.id) is not None


def test_shared_plate_requires_driver_choice(client, abastecedor_headers, session):
    add_driver(session, "Ana", ["SHR-0001"])
    bruno = add_driver(session, "Bruno", ["BBB-1111", "SHR-0001"])

    ambiguous = client.post(
        "/api/abastecedor/abastecimento",
        data={"plate": "SHR-0001", "date": "2025-03-10", "liters": "50"},
        headers=abastecedor_headers
    )
    assert ambiguous.status_code == 400
    detail = ambiguous.json()["detail"]
    assert detail["multipleDrivers"] is True
    assert len(detail["drivers"]) == 2

    chosen = client.post(
        "/api/abastecedor/abastecimento",
        data={"plate": "SHR-0001", "driver_id": str(bruno.id), "date": "2025-03-10", "liters": "50"},
        headers=abastecedor_headers
    )
    assert chosen.status_code == 201
    assert chosen.json()["abastecimento"]["driver_id"] == bruno.id


def test_register_abastecimento_unknown_plate(client, abastecedor_headers):
    response = client.post(
        "/api/abastecedor/abastecimento",
        data={"plate": "ZZZ-9999", "date": "2025-03-10", "liters": "50"},
        headers=abastecedor_headers
    )
    assert response.status_code == 404


def test_register_outros_insumos(client, abastecedor_headers, session):
    driver = add_driver(session, "Ana", ["BBB-2222"])

    response = client.post(
        "/api/abastecedor/outros-insumos",
        json={"plate": "BBB-2222", "date": "2025-03-10", "quantity": 2},
        headers=abastecedor_headers
    )
    assert response.status_code == 201
    insumo = session.get(OutrosInsumo, response.json()["outros_insumo"]["id"])
    assert insumo.driver_id == driver.id
    assert insumo.description == "Outros Insumos"
    assert insumo.status == RecordStatus.PENDING


def test_admin_completes_abastecimento(client, abastecedor_headers, admin_headers, session):
    add_driver(session, "Ana", ["BBB-2222"])
    record = client.post(
        "/api/abastecedor/abastecimento",
        data={"plate": "BBB-2222", "date": "2025-03-10", "liters": "100"},
        headers=abastecedor_headers
    ).json()["abastecimento"]

    response = client.put(
        f"/api/admin/abastecimentos/{record['id']}", json={"price_per_liter": 6.5}, headers=admin_headers)
    assert response.json()["status"] == "complete"
    assert response.json()["total_value"] == 650
