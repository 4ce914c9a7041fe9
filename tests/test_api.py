"""
HTTP surface tests. Supabase is replaced with the in-memory fakes through
FastAPI dependency overrides.
"""
import unittest

from fastapi.testclient import TestClient

from gpspay.config import settings
from gpspay.deps import get_account_service_factory, get_record_store
from gpspay.main import app
from gpspay.middleware import request_context
from gpspay.services.draft_store import DraftStore
from gpspay.services.wizard import WizardRegistry
from tests.fakes import FakeAccountService, FakeRecordStore, make_session

GOOD_TOKEN = "token-user-1"


class ApiTestCase(unittest.TestCase):

    def setUp(self):
        self.records = FakeRecordStore()
        self.accounts = FakeAccountService()
        self.sessions = {GOOD_TOKEN: make_session("user-1", "owner@example.com", user_type="restaurant")}
        self.factory_calls = []

        async def factory(access_token, refresh_token):
            self.factory_calls.append((access_token, refresh_token))
            self.accounts.session = self.sessions.get(access_token)
            return self.accounts

        app.state.draft_store = DraftStore()
        app.state.wizards = WizardRegistry()
        app.dependency_overrides[get_account_service_factory] = lambda: factory
        app.dependency_overrides[get_record_store] = lambda: self.records
        self.client = TestClient(app)

    def tearDown(self):
        app.dependency_overrides.clear()

    def auth(self, token=GOOD_TOKEN):
        return {"Authorization": f"Bearer {token}"}

    def open_restaurant_wizard_at_step3(self):
        res = self.client.post("/v1/register/restaurant")
        self.assertEqual(res.status_code, 201)
        wizard_id = res.json()["wizard_id"]
        base = f"/v1/register/wizards/{wizard_id}"

        self.client.patch(f"{base}/credentials", json={
            "email": "owner@example.com", "password": "secret1", "password_confirmation": "secret1",
        })
        self.assertEqual(self.client.post(f"{base}/next").status_code, 200)
        self.client.patch(f"{base}/business", json={
            "name": "Spice Hub", "address": "12 MG Road", "coordinates": {"lat": 12.97, "lng": 77.59},
        })
        self.assertEqual(self.client.post(f"{base}/next").json()["current_step"], 3)
        self.client.patch(f"{base}/business", json={"upi_id": "spicehub@upi"})

        item_id = self.client.post(f"{base}/menu-items").json()["draft"]["menu_items"][0]["id"]
        res = self.client.patch(f"{base}/menu-items/{item_id}", json={"name": "Masala Dosa", "price": "80"})
        self.assertEqual(res.status_code, 200)
        return base


class TestRegistrationApi(ApiTestCase):

    def test_business_types(self):
        res = self.client.get("/v1/register/types")

        self.assertEqual(res.status_code, 200)
        self.assertEqual([o["type"] for o in res.json()["options"]], ["restaurant", "toll", "other"])
        self.assertIsNone(res.json()["next"])

    def test_business_types_redirects_signed_in_users(self):
        res = self.client.get("/v1/register/types", headers=self.auth())
        self.assertEqual(res.json()["next"], "/dashboard")

    def test_unknown_business_type(self):
        self.assertEqual(self.client.post("/v1/register/bakery").status_code, 422)

    def test_validation_error_returns_wizard_state(self):
        wizard_id = self.client.post("/v1/register/toll").json()["wizard_id"]
        base = f"/v1/register/wizards/{wizard_id}"
        self.client.patch(f"{base}/credentials", json={
            "email": "a@b.com", "password": "abc", "password_confirmation": "abc",
        })

        res = self.client.post(f"{base}/next")

        self.assertEqual(res.status_code, 422)
        detail = res.json()["detail"]
        self.assertEqual(detail["error"], "Password must be at least 6 characters long")
        self.assertEqual(detail["wizard"]["current_step"], 1)
        self.assertNotIn("password", detail["wizard"])

    def test_rejected_field_returns_inline_error(self):
        wizard_id = self.client.post("/v1/register/toll").json()["wizard_id"]

        res = self.client.patch(f"/v1/register/wizards/{wizard_id}/business",
                                json={"coordinates": {"lat": 200, "lng": 77.5}})

        self.assertEqual(res.status_code, 422)
        detail = res.json()["detail"]
        self.assertEqual(detail["wizard"]["error"], detail["error"])
        self.assertTrue(detail["error"].startswith("coordinates.lat:"))

    def test_missing_wizard(self):
        self.assertEqual(self.client.get("/v1/register/wizards/nope").status_code, 404)

    def test_full_restaurant_registration_then_dashboard(self):
        base = self.open_restaurant_wizard_at_step3()

        res = self.client.post(f"{base}/submit")

        self.assertEqual(res.status_code, 200)
        body = res.json()
        self.assertEqual(body["state"], "verification_pending")
        self.assertEqual(body["profile_status"], "complete")
        self.assertEqual(body["verification"]["email"], "owner@example.com")
        self.assertEqual(self.accounts.sign_up_calls[0]["redirect_to"], f"{settings.SITE_URL}/auth/callback")
        self.assertEqual(self.records.tables["restaurants"][0]["name"], "Spice Hub")
        self.assertEqual(self.records.tables["profile"][0]["user_type"], "restaurant")

        # finished wizards are discarded
        self.assertEqual(self.client.get(base).status_code, 404)

        dashboard = self.client.get("/v1/dashboard", headers=self.auth()).json()
        self.assertEqual(dashboard["email"], "owner@example.com")
        self.assertEqual(dashboard["restaurant"]["name"], "Spice Hub")
        self.assertNotIn("message", dashboard)

    def test_sign_up_failure_surfaces_message(self):
        self.accounts.sign_up_error = "User already registered"
        base = self.open_restaurant_wizard_at_step3()

        res = self.client.post(f"{base}/submit")

        self.assertEqual(res.status_code, 400)
        detail = res.json()["detail"]
        self.assertEqual(detail["error"], "User already registered")
        self.assertEqual(detail["wizard"]["state"], "failed")
        self.assertFalse(detail["wizard"]["submit_disabled"])
        self.assertNotIn("restaurants", self.records.tables)

    def test_profile_failure_is_degraded_success(self):
        self.records.fail_tables.add("restaurants")
        base = self.open_restaurant_wizard_at_step3()

        res = self.client.post(f"{base}/submit")

        self.assertEqual(res.status_code, 200)
        self.assertEqual(res.json()["profile_status"], "pending_reconciliation")


class TestDashboardApi(ApiTestCase):

    def test_requires_session(self):
        res = self.client.get("/v1/dashboard")

        self.assertEqual(res.status_code, 401)
        self.assertEqual(res.json()["detail"], {"message": "Not authenticated", "next": "/login"})

    def test_no_drafts(self):
        res = self.client.get("/v1/dashboard", headers=self.auth())

        self.assertEqual(res.status_code, 200)
        self.assertEqual(res.json()["message"], "No data found for your account.")
        self.assertEqual(res.json()["next"], "/register")

    def test_refresh_token_is_forwarded(self):
        self.client.get("/v1/dashboard", headers={**self.auth(), "X-Refresh-Token": "refresh-1"})
        self.assertIn((GOOD_TOKEN, "refresh-1"), self.factory_calls)

    def test_session_subscription_closed_after_request(self):
        self.client.get("/v1/dashboard", headers=self.auth())
        self.assertEqual(self.accounts.listeners, [])


class TestAuthApi(ApiTestCase):

    def test_login(self):
        session = make_session("user-9", "toll@example.com", user_type="toll")
        self.accounts.users["toll@example.com"] = {"password": "secret1", "session": session}

        res = self.client.post("/v1/auth/login", json={"email": "toll@example.com", "password": "secret1"})

        self.assertEqual(res.status_code, 200)
        self.assertEqual(res.json()["access_token"], "token-user-9")
        self.assertEqual(res.json()["user"]["user_type"], "toll")
        self.assertEqual(res.json()["next"], "/dashboard")

    def test_login_failure_message(self):
        res = self.client.post("/v1/auth/login", json={"email": "x@example.com", "password": "nope"})

        self.assertEqual(res.status_code, 400)
        self.assertEqual(res.json()["detail"], "Invalid login credentials")

    def test_login_page_shows_verified_banner(self):
        res = self.client.get("/v1/auth/login", params={"verified": "true"})
        self.assertEqual(res.json()["success_message"], "Email verified successfully! You can now log in.")
        self.assertIsNone(res.json()["next"])

    def test_session_endpoint(self):
        self.assertFalse(self.client.get("/v1/auth/session").json()["authenticated"])

        res = self.client.get("/v1/auth/session", headers=self.auth())
        self.assertTrue(res.json()["authenticated"])
        self.assertEqual(res.json()["user"]["id"], "user-1")

    def test_logout(self):
        res = self.client.post("/v1/auth/logout", headers=self.auth())

        self.assertEqual(res.status_code, 200)
        self.assertTrue(self.accounts.signed_out)

    def test_callback_redirects_even_when_exchange_fails(self):
        for code in ("good-code", "bad-code"):
            res = self.client.get("/auth/callback", params={"code": code}, follow_redirects=False)

            self.assertEqual(res.status_code, 303)
            self.assertEqual(res.headers["location"], f"{settings.SITE_URL}/login?verified=true")
        self.assertEqual(self.accounts.exchanged_codes, ["good-code", "bad-code"])


class TestTollApi(ApiTestCase):

    def setUp(self):
        super().setUp()
        self.sessions[GOOD_TOKEN] = make_session("user-1", "toll@example.com", user_type="toll")

    def test_register_and_manage_profile(self):
        res = self.client.post("/v1/toll/register", json={
            "email": "toll@example.com", "password": "secret1", "name": "NH48 Plaza", "address": "km 32",
        })
        self.assertEqual(res.status_code, 201)
        self.assertEqual(res.json()["user_id"], "user-1")

        res = self.client.post("/v1/toll/profile/vehicle-types", json={"name": "Car", "fee": "65"},
                               headers=self.auth())
        self.assertEqual(res.status_code, 200)
        self.assertEqual(res.json()["vehicle_types"][0]["name"], "Car")

        res = self.client.post("/v1/toll/transactions", headers=self.auth(), json={
            "vehicle_number": "KA01AB1234", "vehicle_type": "Car", "amount": "65",
        })
        self.assertEqual(res.status_code, 201)
        self.assertEqual(res.json()["payment_method"], "cash")

        rows = self.client.get("/v1/toll/transactions", headers=self.auth()).json()
        self.assertEqual(len(rows), 1)

    def test_missing_profile(self):
        self.assertEqual(self.client.get("/v1/toll/profile", headers=self.auth()).status_code, 404)

    def test_store_failure_is_bad_gateway(self):
        self.records.fail_tables.add("toll_profiles")
        res = self.client.post("/v1/toll/register", json={
            "email": "toll@example.com", "password": "secret1", "name": "NH48 Plaza", "address": "km 32",
        })
        self.assertEqual(res.status_code, 502)


class TestAdminApi(ApiTestCase):

    def setUp(self):
        super().setUp()
        self.sessions["admin-token"] = make_session("admin-1", "ops@example.com", role="admin")

    def test_requires_admin_role(self):
        self.assertEqual(self.client.get("/v1/admin/reconcile", headers=self.auth()).status_code, 403)

    def test_reconcile_failed_profile_writes(self):
        self.records.fail_tables.add("profile")
        base = self.open_restaurant_wizard_at_step3()
        self.client.post(f"{base}/submit")

        pending = self.client.get("/v1/admin/reconcile", headers=self.auth("admin-token")).json()
        self.assertEqual(pending["count"], 1)

        self.records.fail_tables.clear()
        res = self.client.post("/v1/admin/reconcile", headers=self.auth("admin-token"))
        self.assertEqual(res.json(), {"attempted": 1, "reconciled": 1, "remaining": 0})


class TestHealth(ApiTestCase):

    def test_health(self):
        res = self.client.get("/health")

        self.assertEqual(res.status_code, 200)
        self.assertEqual(res.json()["open_wizards"], 0)
        self.assertIn("X-Request-ID", res.headers)

    def test_request_id_is_echoed(self):
        res = self.client.get("/health", headers={"X-Request-ID": "req-42"})
        self.assertEqual(res.headers["X-Request-ID"], "req-42")


class TestRequestContext(unittest.TestCase):

    def test_wizard_requests_carry_wizard_id(self):
        self.assertEqual(request_context("/v1/register/wizards/abc123/menu-items/i1"),
                         {"wizard_id": "abc123"})
        self.assertEqual(request_context("/v1/register/wizards/abc123"), {"wizard_id": "abc123"})

    def test_opening_a_wizard_carries_business_type(self):
        self.assertEqual(request_context("/v1/register/toll"), {"business_type": "toll"})

    def test_other_paths_add_nothing(self):
        self.assertEqual(request_context("/v1/register/types"), {})
        self.assertEqual(request_context("/v1/dashboard"), {})


if __name__ == "__main__":
    unittest.main()
