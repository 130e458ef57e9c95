from conftest import auth_headers, make_user
from hotel_api.services.leave_service import LeaveService


def test_login_and_me(client, session, two_hotels):
    u = make_user(session, role="manager", establishment=two_hotels["a"], email="boss@test.local", password="pw1")

    bad = client.post("/api/v1/auth/login", json={"email": "boss@test.local", "password": "nope"})
    assert bad.status_code == 401
    assert bad.get_json()["success"] is False

    r = client.post("/api/v1/auth/login", json={"email": "Boss@test.local", "password": "pw1"})
    assert r.status_code == 200
    body = r.get_json()["data"]
    assert body["user"]["establishment_id"] == two_hotels["a"].id

    me = client.get("/api/v1/auth/me", headers={"Authorization": f"Bearer {body['access']}"})
    assert me.get_json()["data"]["id"] == u.id


def test_requires_token(client, session):
    assert client.get("/api/v1/leaves").status_code == 401


def test_cross_establishment_leave_is_400(client, session, two_hotels):
    mgr_b = make_user(session, role="manager", establishment=two_hotels["b"])
    r = client.post("/api/v1/leaves", headers=auth_headers(mgr_b), json={
        "employee_id": two_hotels["emp_a"].id,
        "type": "annual",
        "start_date": "2025-05-01",
        "end_date": "2025-05-02",
    })
    assert r.status_code == 400
    err = r.get_json()["error"]
    assert err["code"] == "CROSS_ESTABLISHMENT_RELATIONSHIP"
    assert err["detail"]["establishments"]["parent"] == two_hotels["a"].id


def test_reading_other_establishments_leave_is_403(client, session, two_hotels):
    leave = LeaveService.create({
        "employee_id": two_hotels["emp_a"].id, "type": "sick",
        "start_date": "2025-05-01", "end_date": "2025-05-01",
    })
    staff_b = make_user(session, role="staff", establishment=two_hotels["b"])
    r = client.get(f"/api/v1/leaves/{leave.id}", headers=auth_headers(staff_b))
    assert r.status_code == 403
    assert r.get_json()["error"]["code"] == "ESTABLISHMENT_ACCESS_DENIED"

    staff_a = make_user(session, role="staff", establishment=two_hotels["a"])
    r = client.get(f"/api/v1/leaves/{leave.id}", headers=auth_headers(staff_a))
    assert r.status_code == 200
    assert r.get_json()["data"]["days"] == 1


def test_only_managers_approve_leaves(client, session, two_hotels):
    leave = LeaveService.create({
        "employee_id": two_hotels["emp_a"].id, "type": "sick",
        "start_date": "2025-05-01", "end_date": "2025-05-01",
    })
    staff_a = make_user(session, role="staff", establishment=two_hotels["a"])
    assert client.post(f"/api/v1/leaves/{leave.id}/approve", headers=auth_headers(staff_a)).status_code == 403

    mgr_a = make_user(session, role="manager", establishment=two_hotels["a"])
    r = client.post(f"/api/v1/leaves/{leave.id}/approve", headers=auth_headers(mgr_a))
    assert r.status_code == 200
    assert r.get_json()["data"]["status"] == "approved"


def test_duplicate_payroll_is_409(client, session, two_hotels):
    acct = make_user(session, role="accountant", establishment=two_hotels["a"])
    body = {"employee_id": two_hotels["emp_a"].id, "period": {"year": 2025, "month": 6}}
    first = client.post("/api/v1/payrolls", headers=auth_headers(acct), json=body)
    assert first.status_code == 201
    assert first.get_json()["data"]["net_salary"] == 1740.0

    again = client.post("/api/v1/payrolls", headers=auth_headers(acct), json=body)
    assert again.status_code == 409
    assert again.get_json()["error"]["code"] == "PAYROLL_PERIOD_EXISTS"


def test_generate_payrolls_endpoint(client, session, two_hotels):
    mgr_a = make_user(session, role="manager", establishment=two_hotels["a"])
    r = client.post("/api/v1/payrolls/generate", headers=auth_headers(mgr_a), json={"year": 2025, "month": 7})
    assert r.status_code == 201
    assert r.get_json()["meta"]["count"] == 1

    r = client.post("/api/v1/payrolls/generate", headers=auth_headers(mgr_a), json={"year": 2025, "month": 7})
    assert r.status_code == 200
    assert r.get_json()["meta"]["count"] == 0


def test_analytics_for_other_establishment_is_403(client, session, two_hotels):
    mgr_b = make_user(session, role="manager", establishment=two_hotels["b"])
    r = client.get(
        f"/api/v1/analytics/financial-summary?establishment_id={two_hotels['a'].id}",
        headers=auth_headers(mgr_b),
    )
    assert r.status_code == 403

    r = client.get(
        "/api/v1/analytics/financial-summary?start_date=2025-01-01&end_date=2025-01-31",
        headers=auth_headers(mgr_b),
    )
    assert r.status_code == 200
    assert r.get_json()["data"]["revenue"] == 0.0


def test_access_log_endpoints_are_admin_only(client, session, two_hotels):
    mgr_b = make_user(session, role="manager", establishment=two_hotels["b"])
    client.get(f"/api/v1/analytics/occupancy?establishment_id={two_hotels['a'].id}", headers=auth_headers(mgr_b))
    assert client.get("/api/v1/analytics/access-log/stats", headers=auth_headers(mgr_b)).status_code == 403

    root = make_user(session, role="super_admin")
    r = client.get("/api/v1/analytics/access-log/violations", headers=auth_headers(root))
    assert r.status_code == 200
    assert len(r.get_json()["data"]) == 1


def test_report_xlsx_download(client, session, two_hotels):
    mgr_a = make_user(session, role="manager", establishment=two_hotels["a"])
    r = client.get(
        "/api/v1/reports/financial/xlsx?start_date=2025-01-01&end_date=2025-01-31",
        headers=auth_headers(mgr_a),
    )
    assert r.status_code == 200
    assert r.mimetype.endswith("spreadsheetml.sheet")
    assert r.data[:2] == b"PK"


def test_token_without_user_has_no_context(client, session, two_hotels):
    from flask_jwt_extended import create_access_token

    token = create_access_token(identity="999")
    r = client.get(
        f"/api/v1/analytics/occupancy?establishment_id={two_hotels['a'].id}",
        headers={"Authorization": f"Bearer {token}"},
    )
    assert r.status_code == 500
    assert r.get_json()["error"]["code"] == "MISSING_ESTABLISHMENT_CONTEXT"


def test_establishments_by_city_and_manager(client, session, two_hotels):
    mgr = make_user(session, role="manager", establishment=two_hotels["a"])
    two_hotels["a"].manager_id = mgr.id
    session.commit()

    r = client.get("/api/v1/establishments/by-city/nic", headers=auth_headers(mgr))
    assert [e["name"] for e in r.get_json()["data"]] == ["Hotel B"]

    r = client.get(f"/api/v1/establishments/by-manager/{mgr.id}", headers=auth_headers(mgr))
    assert [e["id"] for e in r.get_json()["data"]] == [two_hotels["a"].id]

    other = make_user(session, role="manager", establishment=two_hotels["b"])
    assert client.get(f"/api/v1/establishments/by-manager/{mgr.id}", headers=auth_headers(other)).status_code == 403
