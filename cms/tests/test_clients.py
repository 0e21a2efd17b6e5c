import pytest

from cms.core.security import verify_password
from cms.models import Abastecimento, Client, Driver, Freight, RecordStatus


def test_create_client_and_duplicates(client, admin_headers, driver):
    created = client.post("/api/admin/clients/", json={"name": "Nova Empresa"}, headers=admin_headers)
    assert created.status_code == 201
    assert created.json()["empresa"] == "Nova Empresa"

    assert client.post("/api/admin/clients/", json={"name": "Nova Empresa"}, headers=admin_headers).status_code == 409
    # nome já usado no cadastro de um motorista
    assert client.post(
        "/api/admin/clients/", json={"name": "Transportes XYZ"}, headers=admin_headers).status_code == 409
    assert client.post("/api/admin/clients/", json={"name": "  "}, headers=admin_headers).status_code == 400


def test_clients_overview_includes_driver_only_clients(client, admin_headers, session, driver):
    session.add(Client(empresa="Sem Motoristas"))
    session.add(Freight(driver_id=driver.id, date="2025-03-10", total_value=1000, status=RecordStatus.COMPLETE))
    session.add(Abastecimento(driver_id=driver.id, date="2025-03-10", total_value=300))
    session.commit()

    body = client.get("/api/admin/clients/", headers=admin_headers).json()
    by_name = {row["client"]: row for row in body}
    assert set(by_name) == {"Sem Motoristas", "Transportes XYZ"}
    assert by_name["Transportes XYZ"]["driver_count"] == 1
    assert by_name["Transportes XYZ"]["total_freight_value"] == pytest.approx(1000)
    assert by_name["Transportes XYZ"]["total_abastecimento_value"] == pytest.approx(300)
    assert by_name["Sem Motoristas"]["freight_count"] == 0


def test_client_details(client, admin_headers, session, driver):
    session.add(Freight(driver_id=driver.id, date="2025-03-10", total_value=1000))
    session.commit()

    body = client.get("/api/admin/clients/Transportes XYZ", headers=admin_headers).json()
    assert [d["id"] for d in body["drivers"]] == [driver.id]
    assert len(body["freights"]) == 1
    assert body["stats"]["total_to_receive"] == pytest.approx(1000)

    assert client.get("/api/admin/clients/Ninguem", headers=admin_headers).status_code == 404


def test_update_client_credentials_enables_portal_login(client, admin_headers, session):
    created = client.post("/api/admin/clients/", json={"name": "Nova Empresa"}, headers=admin_headers).json()

    response = client.put(
        f"/api/admin/clients/{created['id']}",
        json={"cnpj": "11.222.333/0001-81", "password": "segredo", "name": "Paula"},
        headers=admin_headers
    )
    assert response.status_code == 200
    assert response.json()["cnpj"] == "11222333000181"

    stored = session.get(Client, created["id"])
    assert verify_password("segredo", stored.password)

    login = client.post("/api/auth/cliente/login", json={"document": "11222333000181", "password": "segredo"})
    assert login.status_code == 200


def test_admin_driver_crud(client, admin_headers, session, driver):
    created = client.post(
        "/api/admin/drivers/",
        json={"name": "Novo", "plate": "new-1a23", "price_per_km_ton": 0.4, "client": "Transportes XYZ"},
        headers=admin_headers
    )
    assert created.status_code == 201
    assert created.json()["plate"] == "NEW-1A23"

    duplicate = client.post(
        "/api/admin/drivers/",
        json={"name": "Outro", "plate": "ABC-1234", "price_per_km_ton": 0.4},
        headers=admin_headers
    )
    assert duplicate.status_code == 409

    conflict = client.put(
        f"/api/admin/drivers/{created.json()['id']}", json={"plate": "ABC-1234"}, headers=admin_headers)
    assert conflict.status_code == 409

    client.delete(f"/api/admin/drivers/{driver.id}", headers=admin_headers)
    active = client.get("/api/admin/drivers/", params={"active": "true"}, headers=admin_headers).json()
    assert [d["name"] for d in active] == ["Novo"]
    assert session.get(Driver, driver.id).active is False
