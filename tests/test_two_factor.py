"""
Tests for two-factor code verification.

Tests:
- Input validation (no attempt row written)
- TOTP clock-skew tolerance
- Single-use backup codes
- Attempt logging
- HTTP surface (status codes, CORS preflight, method restriction)
"""

import uuid
from datetime import datetime, timedelta, timezone

import pyotp
import pytest

from app.core.exceptions import InputValidationError, NotFoundError
from app.core.security import generate_backup_codes, hash_backup_code
from app.core.two_factor import verify_two_factor_code
from app.crud import two_factor as two_factor_crud
from app.models.two_factor import TwoFactorAttempt, TwoFactorBackupCode, TwoFactorCredential, TwoFactorType

# Exactly on a 30 second step boundary
T = datetime(2026, 3, 2, 12, 0, 0, tzinfo=timezone.utc)

VERIFY_URL = "/api/v1/auth/2fa/verify"


def attempt_count(db):
    return db.query(TwoFactorAttempt).count()


class TestValidation:
    """Malformed requests are rejected before any storage access"""

    @pytest.mark.parametrize("user_id,code,code_type,message", [
        (None, "123456", "totp", "userId and code are required"),
        ("", "123456", "totp", "userId and code are required"),
        (str(uuid.uuid4()), None, "totp", "userId and code are required"),
        (str(uuid.uuid4()), "123456", "sms", "type must be 'totp' or 'backup'"),
        ("not-a-uuid", "123456", "totp", "userId must be a valid UUID"),
        (str(uuid.uuid4()), "12a456", "totp", "TOTP code must be 6 digits"),
        (str(uuid.uuid4()), "1234567", "totp", "TOTP code must be 6 digits"),
        (str(uuid.uuid4()), "123456\n", "totp", "TOTP code must be 6 digits"),
        (str(uuid.uuid4()), "\uff11\uff12\uff13\uff14\uff15\uff16", "totp", "TOTP code must be 6 digits"),
        (str(uuid.uuid4()), "ABCDEFGHJKLM", "backup", "Invalid backup code format"),
        (str(uuid.uuid4()), "abcd-efgh-jklm", "backup", "Invalid backup code format"),
        (str(uuid.uuid4()), "ABCD-EFGH-JKLM\n", "backup", "Invalid backup code format"),
    ])
    def test_rejected_without_attempt_row(self, db_session, user_id, code, code_type, message):
        with pytest.raises(InputValidationError) as exc_info:
            verify_two_factor_code(db_session, user_id, code, code_type)

        assert exc_info.value.message == message
        assert exc_info.value.error_code == "validation_error"
        assert attempt_count(db_session) == 0

    def test_type_defaults_to_totp(self, db_session, user, credential, totp_secret):
        code = pyotp.TOTP(totp_secret).at(T)

        success, message = verify_two_factor_code(db_session, str(user.id), code, None, now=T)

        assert success is True
        attempt = db_session.query(TwoFactorAttempt).one()
        assert attempt.attempt_type == TwoFactorType.TOTP


class TestTotp:
    """TOTP verification with one step of clock-skew tolerance"""

    @pytest.mark.parametrize("offset", [0, 30, -30])
    def test_accepts_within_one_step(self, db_session, user, credential, totp_secret, offset):
        code = pyotp.TOTP(totp_secret).at(T)

        success, message = verify_two_factor_code(
            db_session, str(user.id), code, "totp", now=T + timedelta(seconds=offset)
        )

        assert success is True
        assert message == "Code verified successfully"

    @pytest.mark.parametrize("offset", [90, -90])
    def test_rejects_three_steps_away(self, db_session, user, credential, totp_secret, offset):
        code = pyotp.TOTP(totp_secret).at(T)

        success, message = verify_two_factor_code(
            db_session, str(user.id), code, "totp", now=T + timedelta(seconds=offset)
        )

        assert success is False
        assert message == "Invalid code"

    def test_fullwidth_digits_are_rejected(self, db_session, user, credential, totp_secret):
        code = pyotp.TOTP(totp_secret).at(T)
        fullwidth = "".join(chr(ord(digit) + 0xFEE0) for digit in code)

        with pytest.raises(InputValidationError):
            verify_two_factor_code(db_session, str(user.id), fullwidth, "totp", now=T)

        assert attempt_count(db_session) == 0

    def test_success_stamps_last_verified(self, db_session, user, credential, totp_secret):
        code = pyotp.TOTP(totp_secret).at(T)

        verify_two_factor_code(db_session, str(user.id), code, "totp", ip_address="1.2.3.4", user_agent="pytest", now=T)

        db_session.expire_all()
        stored = db_session.query(TwoFactorCredential).filter(TwoFactorCredential.user_id == user.id).one()
        assert stored.last_verified_at is not None

        attempt = db_session.query(TwoFactorAttempt).one()
        assert attempt.success is True
        assert attempt.failure_reason is None
        assert attempt.ip_address == "1.2.3.4"
        assert attempt.user_agent == "pytest"

    def test_failure_logs_reason(self, db_session, user, credential, totp_secret):
        wrong = "000000" if pyotp.TOTP(totp_secret).at(T) != "000000" else "111111"

        success, _ = verify_two_factor_code(db_session, str(user.id), wrong, "totp", now=T)

        assert success is False
        attempt = db_session.query(TwoFactorAttempt).one()
        assert attempt.success is False
        assert attempt.failure_reason == "Invalid code"

        db_session.expire_all()
        stored = db_session.query(TwoFactorCredential).filter(TwoFactorCredential.user_id == user.id).one()
        assert stored.last_verified_at is None


class TestBackupCodes:
    """Backup codes are redeemable exactly once"""

    def test_code_is_single_use(self, db_session, user, credential, backup_codes):
        code = backup_codes[0]

        first = verify_two_factor_code(db_session, str(user.id), code, "backup", now=T)
        second = verify_two_factor_code(db_session, str(user.id), code, "backup", now=T)

        assert first == (True, "Code verified successfully")
        assert second == (False, "Invalid code")
        assert two_factor_crud.count_backup_codes(db_session, credential.id) == len(backup_codes) - 1
        assert attempt_count(db_session) == 2

    def test_other_codes_survive_redemption(self, db_session, user, credential, backup_codes):
        verify_two_factor_code(db_session, str(user.id), backup_codes[0], "backup", now=T)

        success, _ = verify_two_factor_code(db_session, str(user.id), backup_codes[1], "backup", now=T)

        assert success is True

    def test_lowercase_code_is_rejected(self, db_session, user, credential, backup_codes):
        with pytest.raises(InputValidationError):
            verify_two_factor_code(db_session, str(user.id), backup_codes[2].lower(), "backup", now=T)

        assert attempt_count(db_session) == 0
        assert two_factor_crud.count_backup_codes(db_session, credential.id) == len(backup_codes)

    def test_unknown_code_is_invalid(self, db_session, user, credential, backup_codes):
        success, message = verify_two_factor_code(db_session, str(user.id), "ZZZZ-ZZZZ-ZZZZ", "backup", now=T)

        assert success is False
        assert two_factor_crud.count_backup_codes(db_session, credential.id) == len(backup_codes)

    def test_consume_removes_exactly_one_row(self, db_session, credential, backup_codes):
        code_hash = hash_backup_code(backup_codes[0])

        assert two_factor_crud.consume_backup_code(db_session, credential.id, code_hash) is True
        assert two_factor_crud.consume_backup_code(db_session, credential.id, code_hash) is False

    def test_same_code_redeemed_from_two_sessions(self, session_factory, user, credential, backup_codes):
        code_hash = hash_backup_code(backup_codes[0])
        first, second = session_factory(), session_factory()
        try:
            first_credential = two_factor_crud.get_active_credential(first, user.id)
            second_credential = two_factor_crud.get_active_credential(second, user.id)

            results = [
                two_factor_crud.consume_backup_code(first, first_credential.id, code_hash),
                two_factor_crud.consume_backup_code(second, second_credential.id, code_hash),
            ]
            first.commit()
            second.commit()

            assert sorted(results) == [False, True]
            assert two_factor_crud.count_backup_codes(first, credential.id) == len(backup_codes) - 1
        finally:
            first.close()
            second.close()

    def test_different_codes_redeemed_from_two_sessions(self, session_factory, user, credential, backup_codes):
        first, second = session_factory(), session_factory()
        try:
            first_credential = two_factor_crud.get_active_credential(first, user.id)
            second_credential = two_factor_crud.get_active_credential(second, user.id)

            assert two_factor_crud.consume_backup_code(
                first, first_credential.id, hash_backup_code(backup_codes[0])
            ) is True
            assert two_factor_crud.consume_backup_code(
                second, second_credential.id, hash_backup_code(backup_codes[1])
            ) is True
            first.commit()
            second.commit()

            remaining = first.query(TwoFactorBackupCode.code_hash).filter(
                TwoFactorBackupCode.credential_id == credential.id
            ).all()
            assert [row.code_hash for row in remaining] == [hash_backup_code(backup_codes[2])]
        finally:
            first.close()
            second.close()

    def test_generated_codes_have_expected_format(self):
        codes = generate_backup_codes(10)

        assert len(codes) == 10
        for code in codes:
            groups = code.split("-")
            assert len(groups) == 3
            assert all(len(group) == 4 for group in groups)
            assert not set(code) & set("01OI")


class TestMissingSetup:
    """Users without a live 2FA credential"""

    def test_not_found_logs_attempt(self, db_session, user):
        with pytest.raises(NotFoundError) as exc_info:
            verify_two_factor_code(db_session, str(user.id), "123456", "totp", now=T)

        assert exc_info.value.message == "No 2FA setup found"
        attempt = db_session.query(TwoFactorAttempt).one()
        assert attempt.success is False
        assert attempt.failure_reason == "No 2FA setup found"

    def test_soft_deleted_credential_is_ignored(self, db_session, user, credential, totp_secret):
        credential.deleted_at = T
        db_session.commit()

        with pytest.raises(NotFoundError):
            verify_two_factor_code(db_session, str(user.id), pyotp.TOTP(totp_secret).at(T), "totp", now=T)


class TestVerifyEndpoint:
    """POST /api/v1/auth/2fa/verify"""

    def test_valid_code(self, client, user, credential, totp_secret):
        response = client.post(VERIFY_URL, json={
            "userId": str(user.id),
            "code": pyotp.TOTP(totp_secret).now(),
            "type": "totp"
        })

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["message"] == "Code verified successfully"
        assert data["error_code"] is None

    def test_invalid_code_is_200(self, client, user, credential):
        response = client.post(VERIFY_URL, json={
            "userId": str(user.id),
            "code": "ZZZZ-ZZZZ-ZZZZ",
            "type": "backup"
        })

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is False
        assert data["message"] == "Invalid code"
        assert data["error_code"] == "invalid_code"

    def test_missing_fields_is_400(self, client, db_session):
        response = client.post(VERIFY_URL, json={"code": "123456"})

        assert response.status_code == 400
        data = response.json()
        assert data["success"] is False
        assert data["error_code"] == "validation_error"
        assert data["message"] == "userId and code are required"
        assert attempt_count(db_session) == 0

    def test_malformed_json_is_400(self, client):
        response = client.post(VERIFY_URL, content=b"{not json", headers={"Content-Type": "application/json"})

        assert response.status_code == 400
        assert response.json()["error_code"] == "validation_error"

    def test_no_setup_is_404(self, client, user):
        response = client.post(VERIFY_URL, json={"userId": str(user.id), "code": "123456"})

        assert response.status_code == 404
        data = response.json()
        assert data["error_code"] == "not_found"
        assert data["message"] == "No 2FA setup found"

    def test_records_client_ip_and_user_agent(self, client, db_session, user, credential):
        client.post(
            VERIFY_URL,
            json={"userId": str(user.id), "code": "ZZZZ-ZZZZ-ZZZZ", "type": "backup"},
            headers={"X-Forwarded-For": "203.0.113.7, 10.0.0.1", "User-Agent": "test-agent"}
        )

        attempt = db_session.query(TwoFactorAttempt).one()
        assert attempt.ip_address == "203.0.113.7"
        assert attempt.user_agent == "test-agent"

    def test_preflight_allows_any_origin(self, client):
        response = client.options(VERIFY_URL, headers={
            "Origin": "https://some-other-site.example",
            "Access-Control-Request-Method": "POST"
        })

        assert response.status_code == 200
        assert response.headers["Access-Control-Allow-Origin"] == "*"

    def test_other_methods_not_allowed(self, client):
        response = client.get(VERIFY_URL)

        assert response.status_code == 405
        assert response.json()["error_code"] == "method_not_allowed"

    def test_rate_limited(self, client, monkeypatch, user):
        from app.core.exceptions import RateLimitExceededError

        def over_limit(ip_address):
            raise RateLimitExceededError("Too many verification attempts", retry_after=42)

        monkeypatch.setattr("app.api.endpoints.two_factor.check_verify_2fa_limit", over_limit)

        response = client.post(VERIFY_URL, json={"userId": str(user.id), "code": "123456"})

        assert response.status_code == 429
        assert response.headers["Retry-After"] == "42"
        assert response.json()["error_code"] == "rate_limited"
