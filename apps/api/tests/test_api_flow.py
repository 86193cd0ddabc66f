import pytest
from sqlalchemy.exc import OperationalError
from sqlalchemy.future import select

from conftest import ADMIN_EMAIL, ADMIN_PASSWORD
from models.event_config import EventConfig
from models.guest import Guest
from models.hotel import Hotel
from models.payment import Payment
from models.room import Room
from routers import audit as audit_router
from routers import guests as guests_router
from services.audit import AuditRecorder


async def _create_room(client, headers, precio=500, nombre="Suite Jardín"):
    response = await client.post(
        "/api/habitaciones",
        headers=headers,
        json={"nombre": nombre, "precio": precio, "capacidad": 2, "cupos_disponibles": 2},
    )
    assert response.status_code == 200, response.text
    return response.json()


async def _create_guest(client, headers, room_id=None, nombre="Ana Pérez"):
    response = await client.post(
        "/api/invitados",
        headers=headers,
        json={"nombre": nombre, "contacto": "ana@example.com", "habitacion_id": room_id},
    )
    assert response.status_code == 200, response.text
    return response.json()


async def _pay(client, headers, guest_id, monto):
    return await client.post(
        "/api/pagos",
        headers=headers,
        json={"invitado_id": guest_id, "monto": monto, "metodo_pago": "Transferencia", "fecha_pago": "2024-05-01"},
    )


async def _audit_entries(client, headers, test_app):
    await test_app.state.audit_recorder.drain()
    response = await client.get("/api/auditoria", headers=headers)
    assert response.status_code == 200
    return response.json()


@pytest.mark.asyncio
async def test_health_is_public(client):
    response = await client.get("/api/health")
    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "OK"
    assert body["database"] == "up"


@pytest.mark.asyncio
async def test_payment_lifecycle_reconciles_and_guards_room_delete(client, auth_headers, test_app):
    room = await _create_room(client, auth_headers, precio=500)
    guest = await _create_guest(client, auth_headers, room_id=room["id"])
    assert guest["estado_pago"] == "Pendiente"
    assert guest["saldo_pendiente"] == 500.0

    first = await _pay(client, auth_headers, guest["id"], 200)
    assert first.status_code == 200, first.text
    assert first.json()["estado_pago"] == "Parcial"
    assert first.json()["saldo_pendiente"] == 300.0
    assert first.json()["recibo"]["relativePath"].startswith("/recibos/recibo_")

    second = await _pay(client, auth_headers, guest["id"], 300)
    assert second.json()["estado_pago"] == "Pagado"
    assert second.json()["saldo_pendiente"] == 0.0
    assert second.json()["total_pagado"] == 500.0

    detail = await client.get(f"/api/invitados/{guest['id']}", headers=auth_headers)
    assert detail.json()["estado_pago"] == "Pagado"
    assert detail.json()["total_pagado"] == 500.0

    history = await client.get(f"/api/invitados/{guest['id']}/pagos", headers=auth_headers)
    assert [item["saldo_pendiente"] for item in history.json()] == [0.0, 300.0]

    blocked = await client.delete(f"/api/habitaciones/{room['id']}", headers=auth_headers)
    assert blocked.status_code == 400
    assert blocked.json() == {"error": "No se puede eliminar la habitación porque tiene invitados asignados"}

    deleted_guest = await client.delete(f"/api/invitados/{guest['id']}", headers=auth_headers)
    assert deleted_guest.status_code == 200
    assert (await client.get("/api/pagos", headers=auth_headers)).json() == []

    deleted_room = await client.delete(f"/api/habitaciones/{room['id']}", headers=auth_headers)
    assert deleted_room.status_code == 200

    entries = await _audit_entries(client, auth_headers, test_app)
    actions = {(entry["tabla"], entry["accion"]) for entry in entries}
    assert ("habitaciones", "DELETE") in actions
    assert ("invitados", "DELETE") in actions
    assert ("pagos", "CREATE") in actions
    assert all(entry["usuario_email"] == ADMIN_EMAIL for entry in entries)


@pytest.mark.asyncio
async def test_room_price_change_reconciles_assigned_guests(client, auth_headers):
    room = await _create_room(client, auth_headers, precio=500)
    guest = await _create_guest(client, auth_headers, room_id=room["id"])
    await _pay(client, auth_headers, guest["id"], 300)

    response = await client.put(
        f"/api/habitaciones/{room['id']}",
        headers=auth_headers,
        json={"nombre": room["nombre"], "precio": 300, "capacidad": 2, "cupos_disponibles": 2},
    )
    assert response.status_code == 200
    assert response.json()["invitados_asignados"] == 1

    guests = (await client.get("/api/invitados", headers=auth_headers)).json()
    assert guests[0]["estado_pago"] == "Pagado"
    assert guests[0]["saldo_pendiente"] == 0.0


@pytest.mark.asyncio
async def test_guest_without_room_stays_pending(client, auth_headers):
    guest = await _create_guest(client, auth_headers)
    assert guest["habitacion_id"] is None
    assert guest["estado_pago"] == "Pendiente"
    assert guest["saldo_pendiente"] == 0.0


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "method,path",
    [
        ("GET", "/api/invitados"),
        ("POST", "/api/habitaciones"),
        ("GET", "/api/dashboard/stats"),
        ("GET", "/api/auditoria"),
        ("GET", "/api/verify-token"),
    ],
)
async def test_protected_routes_require_token(client, method, path):
    missing = await client.request(method, path, json={})
    assert missing.status_code == 401
    assert missing.json() == {"error": "Token de acceso requerido"}

    invalid = await client.request(method, path, json={}, headers={"Authorization": "Bearer not-a-token"})
    assert invalid.status_code == 403
    assert invalid.json() == {"error": "Token inválido"}


@pytest.mark.asyncio
async def test_rejected_token_does_not_mutate(client, auth_headers):
    response = await client.post(
        "/api/habitaciones",
        headers={"Authorization": "Bearer forged"},
        json={"nombre": "Suite", "precio": 100, "capacidad": 1, "cupos_disponibles": 1},
    )
    assert response.status_code == 403
    assert (await client.get("/api/habitaciones", headers=auth_headers)).json() == []


@pytest.mark.asyncio
async def test_login_register_and_verify(client):
    bad = await client.post("/api/auth/login", json={"email": ADMIN_EMAIL, "password": "wrong"})
    assert bad.status_code == 401
    assert bad.json() == {"error": "Credenciales inválidas"}

    missing = await client.post("/api/auth/login", json={"email": ADMIN_EMAIL})
    assert missing.status_code == 400

    login = await client.post("/api/auth/login", json={"email": ADMIN_EMAIL, "password": ADMIN_PASSWORD})
    assert login.status_code == 200
    token = login.json()["token"]

    verified = await client.get("/api/verify-token", headers={"Authorization": f"Bearer {token}"})
    assert verified.json() == {"valid": True, "user": {"id": login.json()["user"]["id"], "email": ADMIN_EMAIL}}

    short = await client.post("/api/auth/register", json={"email": "planner@example.com", "password": "123"})
    assert short.status_code == 400

    registered = await client.post("/api/auth/register", json={"email": "planner@example.com", "password": "secreto"})
    assert registered.status_code == 200
    assert registered.json()["user"]["email"] == "planner@example.com"

    duplicate = await client.post("/api/auth/register", json={"email": "planner@example.com", "password": "secreto"})
    assert duplicate.status_code == 400
    assert duplicate.json() == {"error": "El usuario ya existe"}


@pytest.mark.asyncio
async def test_login_rate_limit(client, test_app):
    test_app.state.disable_rate_limits = False
    test_app.state.settings.AUTH_RATE_LIMIT_PER_MINUTE = 2
    statuses = []
    for _ in range(3):
        response = await client.post("/api/auth/login", json={"email": ADMIN_EMAIL, "password": "wrong"})
        statuses.append(response.status_code)
    assert statuses == [401, 401, 429]


@pytest.mark.asyncio
async def test_validation_errors_use_spanish_messages(client, auth_headers):
    room = await client.post("/api/habitaciones", headers=auth_headers, json={"nombre": "Suite"})
    assert room.status_code == 400
    assert room.json() == {"error": "Nombre, precio, capacidad y cupos disponibles son requeridos"}

    guest = await client.post("/api/invitados", headers=auth_headers, json={"nombre": "Ana"})
    assert guest.json() == {"error": "Nombre y contacto son requeridos"}

    unknown_room = await client.post(
        "/api/invitados",
        headers=auth_headers,
        json={"nombre": "Ana", "contacto": "ana@example.com", "habitacion_id": 999},
    )
    assert unknown_room.status_code == 404

    unknown_guest = await _pay(client, auth_headers, 999, 100)
    assert unknown_guest.status_code == 404
    assert unknown_guest.json() == {"error": "Invitado no encontrado"}

    guest_id = (await _create_guest(client, auth_headers))["id"]
    zero = await _pay(client, auth_headers, guest_id, 0)
    assert zero.status_code == 400
    assert (await client.get("/api/pagos", headers=auth_headers)).json() == []


@pytest.mark.asyncio
async def test_singletons_upsert_and_audit_create_then_update(client, auth_headers, test_app):
    assert (await client.get("/api/configuracion", headers=auth_headers)).json() == {}

    config = {
        "nombre_novia": "Lucía",
        "nombre_novio": "Mateo",
        "fecha_boda": "2024-12-14",
        "hora_boda": "18:30",
        "lugar_boda": "Hacienda San Gabriel",
    }
    first = await client.post("/api/configuracion", headers=auth_headers, json=config)
    second = await client.post("/api/configuracion", headers=auth_headers, json={**config, "lugar_boda": "Jardín"})
    assert first.json()["id"] == second.json()["id"]
    assert (await client.get("/api/configuracion", headers=auth_headers)).json()["lugar_boda"] == "Jardín"

    hotel = {"nombre": "Hotel Real", "direccion": "Av. Central 10", "servicios_incluidos": ["Desayuno"]}
    await client.post("/api/hotel", headers=auth_headers, json=hotel)
    saved = await client.post("/api/hotel", headers=auth_headers, json={**hotel, "nombre": "Hotel Real Plaza"})
    assert saved.json()["servicios_incluidos"] == ["Desayuno"]

    room = await _create_room(client, auth_headers)
    assert room["hotel_id"] == saved.json()["id"]

    entries = await _audit_entries(client, auth_headers, test_app)
    config_actions = sorted(entry["accion"] for entry in entries if entry["tabla"] == "configuracion_boda")
    hotel_actions = sorted(entry["accion"] for entry in entries if entry["tabla"] == "hotel")
    assert config_actions == ["CREATE", "UPDATE"]
    assert hotel_actions == ["CREATE", "UPDATE"]


@pytest.mark.asyncio
async def test_dashboard_stats(client, auth_headers):
    room = await _create_room(client, auth_headers, precio=500)
    paid = await _create_guest(client, auth_headers, room_id=room["id"], nombre="Ana")
    partial = await _create_guest(client, auth_headers, room_id=room["id"], nombre="Beto")
    await _create_guest(client, auth_headers, nombre="Carla")
    await _pay(client, auth_headers, paid["id"], 500)
    await _pay(client, auth_headers, partial["id"], 100)

    stats = (await client.get("/api/dashboard/stats", headers=auth_headers)).json()
    assert stats == {
        "totalInvitados": 3,
        "ocupacionHotel": 100,
        "totalRecaudado": 600.0,
        "totalPendiente": 400.0,
        "invitadosPagados": 1,
        "invitadosParciales": 1,
        "invitadosPendientes": 1,
    }


@pytest.mark.asyncio
async def test_receipt_regenerate_and_download(client, auth_headers):
    room = await _create_room(client, auth_headers)
    guest = await _create_guest(client, auth_headers, room_id=room["id"])
    payment = (await _pay(client, auth_headers, guest["id"], 150)).json()

    regenerated = await client.post("/api/pagos/regenerar-recibo", headers=auth_headers, json={"pagoId": payment["id"]})
    assert regenerated.status_code == 200
    file_name = regenerated.json()["recibo"]["fileName"]

    download = await client.get(f"/api/recibos/{file_name}", headers=auth_headers)
    assert download.status_code == 200
    assert download.headers["content-type"] == "application/pdf"
    assert download.content.startswith(b"%PDF")

    missing = await client.post("/api/pagos/regenerar-recibo", headers=auth_headers, json={"pagoId": 999})
    assert missing.status_code == 404
    assert (await client.get("/api/recibos/otro.pdf", headers=auth_headers)).status_code == 404


@pytest.mark.asyncio
async def test_upload_cover_image(client, auth_headers, app_settings, tmp_path):
    response = await client.post(
        "/api/upload-portada",
        headers=auth_headers,
        files={"imagen": ("portada.png", b"\x89PNG\r\n\x1a\nfake", "image/png")},
    )
    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["filePath"] == f"/uploads/{body['fileName']}"
    assert (tmp_path / "uploads" / body["fileName"]).is_file()

    rejected = await client.post(
        "/api/upload-portada",
        headers=auth_headers,
        files={"imagen": ("notas.txt", b"hola", "text/plain")},
    )
    assert rejected.status_code == 400
    assert rejected.json() == {"error": "Solo se permiten archivos de imagen"}


@pytest.mark.asyncio
async def test_audit_failure_does_not_fail_primary_operation(client, auth_headers, test_app):
    def broken_session_maker():
        raise RuntimeError("audit store unavailable")

    test_app.state.audit_recorder = AuditRecorder(broken_session_maker)
    room = await _create_room(client, auth_headers)
    await test_app.state.audit_recorder.drain()

    listed = (await client.get("/api/habitaciones", headers=auth_headers)).json()
    assert [item["id"] for item in listed] == [room["id"]]
    assert await _audit_entries(client, auth_headers, test_app) == []


@pytest.mark.asyncio
async def test_each_mutation_writes_exactly_one_audit_entry(client, auth_headers, test_app):
    room = await _create_room(client, auth_headers)
    await client.put(
        f"/api/habitaciones/{room['id']}",
        headers=auth_headers,
        json={"nombre": "Suite Mar", "precio": 450, "capacidad": 2, "cupos_disponibles": 1},
    )
    guest = await _create_guest(client, auth_headers, room_id=room["id"])
    await client.put(
        f"/api/invitados/{guest['id']}",
        headers=auth_headers,
        json={"nombre": "Ana Pérez", "contacto": "+52 555 0100", "habitacion_id": room["id"]},
    )
    assert (await _pay(client, auth_headers, guest["id"], 100)).status_code == 200

    entries = await _audit_entries(client, auth_headers, test_app)
    assert sorted((entry["tabla"], entry["accion"]) for entry in entries) == [
        ("habitaciones", "CREATE"),
        ("habitaciones", "UPDATE"),
        ("invitados", "CREATE"),
        ("invitados", "UPDATE"),
        ("pagos", "CREATE"),
    ]


@pytest.mark.asyncio
async def test_rows_track_creator_and_modifier(client, auth_headers, session_maker):
    room = await _create_room(client, auth_headers)
    guest = await _create_guest(client, auth_headers, room_id=room["id"])
    await _pay(client, auth_headers, guest["id"], 100)
    config = {
        "nombre_novia": "Lucía",
        "nombre_novio": "Mateo",
        "fecha_boda": "2024-12-14",
        "hora_boda": "18:30",
        "lugar_boda": "Hacienda San Gabriel",
    }
    await client.post("/api/configuracion", headers=auth_headers, json=config)
    await client.post("/api/hotel", headers=auth_headers, json={"nombre": "Hotel Real", "direccion": "Av. Central 10"})

    async with session_maker() as session:
        for model in (Room, Guest, Payment, EventConfig, Hotel):
            row = (await session.execute(select(model))).scalars().one()
            assert row.creado_por == 1
            assert row.creado_por_email == ADMIN_EMAIL
            assert row.fecha_creacion is not None
            assert row.modificado_por == 1
            assert row.fecha_modificacion is not None

    planner = await client.post("/api/auth/register", json={"email": "planner@example.com", "password": "secreto"})
    planner_headers = {"Authorization": f"Bearer {planner.json()['token']}"}
    planner_id = planner.json()["user"]["id"]
    await client.put(
        f"/api/habitaciones/{room['id']}",
        headers=planner_headers,
        json={"nombre": "Suite Mar", "precio": 500, "capacidad": 2, "cupos_disponibles": 2},
    )
    await client.post("/api/configuracion", headers=planner_headers, json={**config, "lugar_boda": "Jardín"})

    async with session_maker() as session:
        for model in (Room, EventConfig):
            row = (await session.execute(select(model))).scalars().one()
            assert row.creado_por == 1
            assert row.modificado_por == planner_id
            assert row.modificado_por_email == "planner@example.com"


@pytest.mark.asyncio
async def test_audit_listing_falls_back_to_tracked_rows(client, auth_headers, monkeypatch):
    room = await _create_room(client, auth_headers, nombre="Suite Jardín")
    guest = await _create_guest(client, auth_headers, room_id=room["id"])
    await _pay(client, auth_headers, guest["id"], 250)

    async def unreadable_audit_table(db, limit):
        raise OperationalError("SELECT * FROM auditoria", {}, Exception("no such table: auditoria"))

    monkeypatch.setattr(audit_router, "list_audit_entries", unreadable_audit_table)
    response = await client.get("/api/auditoria", headers=auth_headers)
    assert response.status_code == 200
    by_table = {entry["tabla"]: entry for entry in response.json()}
    assert set(by_table) == {"habitaciones", "invitados", "pagos"}
    assert by_table["habitaciones"]["descripcion"] == "Habitación actualizada: Suite Jardín"
    assert by_table["pagos"]["accion"] == "CREATE"
    assert by_table["pagos"]["descripcion"] == "Pago registrado: $250.00 (Transferencia)"
    assert all(entry["usuario_email"] == ADMIN_EMAIL for entry in response.json())


@pytest.mark.asyncio
async def test_guest_listing_includes_guest_added_during_request(client, auth_headers, session_maker, monkeypatch):
    room = await _create_room(client, auth_headers, precio=500)
    real_reconcile_all = guests_router.reconcile_all

    async def reconcile_then_concurrent_insert(db):
        reconciled = await real_reconcile_all(db)
        async with session_maker() as other:
            other.add(Guest(nombre="Zoe Ruiz", contacto="zoe@example.com", habitacion_id=room["id"]))
            await other.commit()
        return reconciled

    monkeypatch.setattr(guests_router, "reconcile_all", reconcile_then_concurrent_insert)
    response = await client.get("/api/invitados", headers=auth_headers)
    assert response.status_code == 200
    assert [(item["nombre"], item["estado_pago"], item["saldo_pendiente"]) for item in response.json()] == [
        ("Zoe Ruiz", "Pendiente", 500.0)
    ]


@pytest.mark.asyncio
async def test_sub_cent_payment_is_rejected(client, auth_headers):
    room = await _create_room(client, auth_headers)
    guest = await _create_guest(client, auth_headers, room_id=room["id"])
    response = await _pay(client, auth_headers, guest["id"], "0.001")
    assert response.status_code == 400
    assert response.json() == {"error": "El monto debe ser mayor a 0"}
    assert (await client.get("/api/pagos", headers=auth_headers)).json() == []


@pytest.mark.asyncio
async def test_framework_errors_use_spanish_messages(client, auth_headers):
    not_allowed = await client.delete("/api/health")
    assert not_allowed.status_code == 405
    assert not_allowed.json() == {"error": "Método no permitido"}

    unknown = await client.get("/api/no-existe", headers=auth_headers)
    assert unknown.status_code == 404
    assert unknown.json() == {"error": "Recurso no encontrado"}
