"""
Tests for the HTTP surface: create-meet, oauth-google, delete-user.

Collaborators are replaced through app.dependency_overrides; the
provisioner and account logic have their own tests.
"""

from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest

from vetclinic.core.config import ReprovisionPolicy
from vetclinic.core.errors import PartialFailure, UpstreamAuthFailure
from vetclinic.deps import (
    get_anon_gateway,
    get_google_auth_client,
    get_provisioner,
    get_service_gateway,
    get_settings,
)
from vetclinic.environments.base import AuthenticationError, DataStoreError, OAuthTokens
from vetclinic.environments.google import GoogleAuthClient
from vetclinic.environments.supabase import AuthUser, SupabaseGateway
from vetclinic.main import app
from vetclinic.services.meeting_provisioner import MeetingProvisioner, ProvisionResult
from vetclinic.services.provision_ledger import provision_ledger

from conftest import ANON_KEY, make_settings, make_token


MEET_BODY = {"appointmentId": "apt-123", "datetime": "2025-03-01T15:00:00Z"}
OAUTH_BODY = {"code": "auth-code", "redirect_uri": "https://clinic.example/cb"}


# ===========================================================================
# FIXTURES
# ===========================================================================

@pytest.fixture
def provisioner():
    mock = MagicMock(spec=MeetingProvisioner)
    mock.provision_meeting = AsyncMock(
        return_value=ProvisionResult(meeting_url="https://meet.example/abc", event_id="evt-1")
    )
    app.dependency_overrides[get_provisioner] = lambda: mock
    return mock


@pytest.fixture
def auth_client():
    mock = MagicMock(spec=GoogleAuthClient)
    mock.exchange_code_for_tokens = AsyncMock(
        return_value=OAuthTokens(access_token="tok", refresh_token="1//refresh")
    )
    app.dependency_overrides[get_google_auth_client] = lambda: mock
    return mock


@pytest.fixture
def anon_gateway():
    mock = MagicMock(spec=SupabaseGateway)
    mock.get_user.return_value = AuthUser(id="user-1", email="vet@clinic.example")
    app.dependency_overrides[get_anon_gateway] = lambda: mock
    return mock


@pytest.fixture
def service_gateway():
    mock = MagicMock(spec=SupabaseGateway)
    app.dependency_overrides[get_service_gateway] = lambda: mock
    return mock


# ===========================================================================
# HEALTH AND CORS
# ===========================================================================

class TestApp:

    def test_health(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json() == {"status": "ok"}

    def test_cors_preflight(self, client):
        response = client.options(
            "/functions/create-meet",
            headers={
                "Origin": "https://clinic.example",
                "Access-Control-Request-Method": "POST",
                "Access-Control-Request-Headers": "authorization, content-type",
            },
        )

        assert response.status_code == 200
        assert response.headers["access-control-allow-origin"] == "*"
        assert "POST" in response.headers["access-control-allow-methods"]

    def test_wrong_method(self, client):
        response = client.get("/functions/create-meet")

        assert response.status_code == 405
        assert "error" in response.json()


# ===========================================================================
# CREATE-MEET
# ===========================================================================

class TestCreateMeet:

    def test_success(self, client, provisioner, auth_headers):
        response = client.post("/functions/create-meet", json=MEET_BODY, headers=auth_headers)

        assert response.status_code == 200
        assert response.json() == {"meetingUrl": "https://meet.example/abc", "eventId": "evt-1"}
        args = provisioner.provision_meeting.call_args.args
        assert args[1:] == ("apt-123", "2025-03-01T15:00:00Z")

    def test_missing_token_is_unauthorized(self, client, provisioner):
        response = client.post("/functions/create-meet", json=MEET_BODY)

        assert response.status_code == 401
        assert response.json()["kind"] == "Unauthorized"
        provisioner.provision_meeting.assert_not_called()

    def test_badly_signed_token_is_unauthorized(self, client, provisioner):
        headers = {"Authorization": f"Bearer {make_token(secret='wrong-secret')}"}

        response = client.post("/functions/create-meet", json=MEET_BODY, headers=headers)

        assert response.status_code == 401

    def test_verification_can_be_disabled(self, client, provisioner):
        app.dependency_overrides[get_settings] = lambda: make_settings(VERIFY_CALLER_JWT=False)

        response = client.post("/functions/create-meet", json=MEET_BODY)

        assert response.status_code == 200

    def test_missing_configuration(self, client, auth_headers):
        app.dependency_overrides[get_settings] = lambda: make_settings(GOOGLE_REFRESH_TOKEN="")

        response = client.post("/functions/create-meet", json=MEET_BODY, headers=auth_headers)

        assert response.status_code == 500
        assert response.json()["kind"] == "Misconfigured"
        assert response.json()["missing"] == ["GOOGLE_REFRESH_TOKEN"]

    def test_non_json_body_is_invalid_request(self, client, provisioner, auth_headers):
        response = client.post(
            "/functions/create-meet",
            content=b"not json",
            headers={**auth_headers, "Content-Type": "application/json"},
        )

        assert response.status_code == 400
        assert response.json()["kind"] == "InvalidRequest"

    @pytest.mark.parametrize("error, status", [
        (UpstreamAuthFailure("Could not obtain a Google access token"), 502),
        (PartialFailure("update failed", details={"eventId": "evt-1", "meetingUrl": "https://meet.example/abc"}), 500),
    ])
    def test_provisioner_errors_are_rendered(self, client, provisioner, auth_headers, error, status):
        provisioner.provision_meeting.side_effect = error

        response = client.post("/functions/create-meet", json=MEET_BODY, headers=auth_headers)

        assert response.status_code == status
        body = response.json()
        assert body["kind"] == error.kind
        assert body["error"] == error.message
        for key, value in error.details.items():
            assert body[key] == value

    def test_end_to_end_validation_error(self, client, auth_headers, test_settings):
        # Real provisioner: validation fails before any external call
        response = client.post(
            "/functions/create-meet",
            json={"appointmentId": "apt-123"},
            headers=auth_headers,
        )

        assert response.status_code == 400
        assert response.json()["kind"] == "InvalidRequest"

    @pytest.mark.parametrize("start", ["9999-12-31T23:59:00Z", "0001-01-01T00:00:00+05:00"])
    def test_out_of_range_datetime_is_invalid_request(self, client, auth_headers, test_settings, start):
        response = client.post(
            "/functions/create-meet",
            json={"appointmentId": "apt-1", "datetime": start},
            headers=auth_headers,
        )

        assert response.status_code == 400
        assert response.json() == {"error": "datetime is out of range", "kind": "InvalidRequest"}


class TestUnreconciled:

    def test_requires_service_role(self, client, auth_headers):
        response = client.get("/functions/create-meet/unreconciled", headers=auth_headers)

        assert response.status_code == 401

    def test_lists_orphans(self, client, db, service_headers):
        claim = provision_ledger.claim(
            db, "apt-123", datetime(2025, 3, 1, 15, 0, tzinfo=timezone.utc),
            ReprovisionPolicy.NEW_EVENT, lock_ttl_seconds=120,
        )
        provision_ledger.record_event(db, claim.record, "evt-1", "https://meet.example/abc", "clinic-cal")
        provision_ledger.mark_failed(db, claim.record, "Appointment update failed")

        response = client.get("/functions/create-meet/unreconciled", headers=service_headers)

        assert response.status_code == 200
        rows = response.json()
        assert len(rows) == 1
        assert rows[0]["appointment_id"] == "apt-123"
        assert rows[0]["event_id"] == "evt-1"
        assert rows[0]["status"] == "event_created"


# ===========================================================================
# OAUTH-GOOGLE
# ===========================================================================

class TestOAuthGoogle:

    def test_links_account(self, client, auth_client, anon_gateway, service_gateway, auth_headers):
        response = client.post(
            "/functions/oauth-google",
            json=OAUTH_BODY,
            headers=auth_headers,
        )

        assert response.status_code == 200
        assert response.json()["success"] is True
        auth_client.exchange_code_for_tokens.assert_awaited_once_with(
            "auth-code", redirect_uri="https://clinic.example/cb"
        )
        anon_gateway.get_user.assert_called_once_with(auth_headers["Authorization"].split(" ", 1)[1])
        service_gateway.set_profile_refresh_token.assert_called_once_with("user-1", "1//refresh")

    @pytest.mark.parametrize("body", [
        {"redirect_uri": "https://clinic.example/cb"},
        {"code": "auth-code"},
        {"code": "auth-code", "redirect_uri": ""},
    ])
    def test_missing_code_or_redirect_uri_is_400(self, client, auth_client, anon_gateway, service_gateway,
                                                  auth_headers, body):
        response = client.post("/functions/oauth-google", json=body, headers=auth_headers)

        assert response.status_code == 400
        assert response.json() == {"error": "Missing code or redirect_uri"}
        auth_client.exchange_code_for_tokens.assert_not_awaited()

    def test_exchange_failure_is_400(self, client, auth_client, anon_gateway, service_gateway, auth_headers):
        auth_client.exchange_code_for_tokens.side_effect = AuthenticationError("Token request failed: invalid_grant")

        response = client.post("/functions/oauth-google", json={**OAUTH_BODY, "code": "bad"}, headers=auth_headers)

        assert response.status_code == 400
        assert response.json() == {"error": "Token request failed: invalid_grant"}
        service_gateway.set_profile_refresh_token.assert_not_called()

    def test_missing_authorization_is_400(self, client, auth_client, anon_gateway, service_gateway):
        response = client.post("/functions/oauth-google", json=OAUTH_BODY)

        assert response.status_code == 400
        assert response.json() == {"error": "No authorization header"}

    def test_unknown_caller_is_400(self, client, auth_client, anon_gateway, service_gateway, auth_headers):
        anon_gateway.get_user.side_effect = DataStoreError("invalid JWT")

        response = client.post("/functions/oauth-google", json=OAUTH_BODY, headers=auth_headers)

        assert response.status_code == 400
        assert response.json() == {"error": "User not authenticated"}

    def test_caller_lookup_network_failure_is_400(self, client, auth_client, service_gateway, auth_headers):
        supabase_client = MagicMock()
        supabase_client.auth.get_user.side_effect = ConnectionError("connection reset")
        app.dependency_overrides[get_anon_gateway] = lambda: SupabaseGateway(
            url="https://project.supabase.co", key=ANON_KEY, client=supabase_client
        )

        response = client.post("/functions/oauth-google", json=OAUTH_BODY, headers=auth_headers)

        assert response.status_code == 400
        assert response.json() == {"error": "User not authenticated"}
        service_gateway.set_profile_refresh_token.assert_not_called()

    def test_profile_write_failure_is_400(self, client, auth_client, anon_gateway, service_gateway, auth_headers):
        service_gateway.set_profile_refresh_token.side_effect = DataStoreError("Failed to save token: denied")

        response = client.post("/functions/oauth-google", json=OAUTH_BODY, headers=auth_headers)

        assert response.status_code == 400
        assert response.json() == {"error": "Failed to save token: denied"}

    def test_no_refresh_token_leaves_profile(self, client, auth_client, anon_gateway, service_gateway, auth_headers):
        auth_client.exchange_code_for_tokens.return_value = OAuthTokens(access_token="tok")

        response = client.post("/functions/oauth-google", json=OAUTH_BODY, headers=auth_headers)

        assert response.status_code == 200
        service_gateway.set_profile_refresh_token.assert_not_called()


# ===========================================================================
# DELETE-USER
# ===========================================================================

class TestDeleteUser:

    def test_deletes_user(self, client, service_gateway):
        response = client.post(
            "/functions/delete-user",
            json={"userId": "user-1"},
            headers={"Authorization": f"Bearer {ANON_KEY}"},
        )

        assert response.status_code == 200
        assert response.json() == {"message": "User deleted successfully"}
        service_gateway.delete_user.assert_called_once_with("user-1")

    @pytest.mark.parametrize("headers", [
        {},
        {"Authorization": "Bearer not-the-anon-key"},
        {"Authorization": f"Bearer {make_token()}"},
    ])
    def test_wrong_key_is_unauthorized(self, client, service_gateway, headers):
        response = client.post("/functions/delete-user", json={"userId": "user-1"}, headers=headers)

        assert response.status_code == 401
        service_gateway.delete_user.assert_not_called()

    def test_missing_user_id_is_400(self, client, service_gateway):
        response = client.post(
            "/functions/delete-user",
            json={},
            headers={"Authorization": f"Bearer {ANON_KEY}"},
        )

        assert response.status_code == 400
        service_gateway.delete_user.assert_not_called()

    def test_backend_failure_is_500(self, client, service_gateway):
        service_gateway.delete_user.side_effect = DataStoreError("User not found")

        response = client.post(
            "/functions/delete-user",
            json={"userId": "user-1"},
            headers={"Authorization": f"Bearer {ANON_KEY}"},
        )

        assert response.status_code == 500
        assert response.json()["error"] == "User not found"
