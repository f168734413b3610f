from types import SimpleNamespace

import pytest

from meditravel import auth
from meditravel.auth import AuthError, AuthUser


def make_user(metadata=None):
    return SimpleNamespace(id="user-1", email="ada@meditravel.io", user_metadata=metadata or {})


class TestValidation:
    @pytest.mark.parametrize("email", ["ada@meditravel.io", "a.b+c@clinic.co.uk"])
    def test_valid_email(self, email):
        assert auth.validate_email(email)

    @pytest.mark.parametrize("email", ["", "ada", "ada@", "@example.com"])
    def test_invalid_email(self, email):
        assert not auth.validate_email(email)

    def test_display_name(self):
        assert AuthUser("1", "ada@meditravel.io", "Ada", "Lovelace").display_name == "Ada Lovelace"
        assert AuthUser("1", "ada@meditravel.io").display_name == "ada@meditravel.io"


class TestSignIn:
    def test_success(self, supabase):
        supabase.auth.sign_in_with_password.return_value = SimpleNamespace(
            user=make_user({"first_name": "Ada"}), session=object()
        )
        user = auth.sign_in(" ada@meditravel.io ", "secret")

        supabase.auth.sign_in_with_password.assert_called_once_with(
            {"email": "ada@meditravel.io", "password": "secret"}
        )
        assert user.id == "user-1"
        assert user.first_name == "Ada"

    def test_bad_email_never_reaches_server(self, supabase):
        with pytest.raises(AuthError):
            auth.sign_in("nope", "secret")
        supabase.auth.sign_in_with_password.assert_not_called()

    def test_server_error_is_wrapped(self, supabase):
        supabase.auth.sign_in_with_password.side_effect = RuntimeError("Invalid login credentials")
        with pytest.raises(AuthError, match="Invalid login credentials"):
            auth.sign_in("ada@meditravel.io", "wrong")


class TestSignUp:
    def test_short_password(self, supabase):
        with pytest.raises(AuthError, match="at least"):
            auth.sign_up("ada@meditravel.io", "123")

    def test_pending_confirmation_returns_none(self, supabase):
        supabase.auth.sign_up.return_value = SimpleNamespace(user=make_user(), session=None)
        assert auth.sign_up("ada@meditravel.io", "secret123", "Ada", "Lovelace") is None

        payload = supabase.auth.sign_up.call_args.args[0]
        assert payload["options"]["data"] == {"first_name": "Ada", "last_name": "Lovelace"}

    def test_immediate_session(self, supabase):
        supabase.auth.sign_up.return_value = SimpleNamespace(
            user=make_user({"first_name": "Ada", "last_name": "Lovelace"}), session=object()
        )
        user = auth.sign_up("ada@meditravel.io", "secret123", "Ada", "Lovelace")
        assert user.display_name == "Ada Lovelace"


class TestSignOutAndReset:
    def test_sign_out(self, supabase):
        auth.sign_out()
        supabase.auth.sign_out.assert_called_once()

    def test_sign_out_failure(self, supabase):
        supabase.auth.sign_out.side_effect = RuntimeError("network")
        with pytest.raises(AuthError):
            auth.sign_out()

    def test_reset_password(self, supabase):
        auth.reset_password("ada@meditravel.io")
        supabase.auth.reset_password_for_email.assert_called_once_with("ada@meditravel.io")

    def test_reset_password_with_redirect(self, supabase):
        auth.reset_password("ada@meditravel.io", redirect_to="https://app.meditravel.io")
        supabase.auth.reset_password_for_email.assert_called_once_with(
            "ada@meditravel.io", {"redirect_to": "https://app.meditravel.io"}
        )


class TestRecovery:
    def test_recovery_link_signs_in(self, supabase):
        supabase.auth.verify_otp.return_value = SimpleNamespace(user=make_user(), session=object())
        user = auth.recover_session({"token_hash": "abc", "type": "recovery"})

        supabase.auth.verify_otp.assert_called_once_with({"token_hash": "abc", "type": "recovery"})
        assert user.id == "user-1"

    @pytest.mark.parametrize("params", [{}, {"token_hash": "abc"}, {"token_hash": "abc", "type": "signup"}])
    def test_other_links_are_ignored(self, supabase, params):
        assert auth.recover_session(params) is None
        supabase.auth.verify_otp.assert_not_called()

    def test_expired_link(self, supabase):
        supabase.auth.verify_otp.side_effect = RuntimeError("Token has expired or is invalid")
        with pytest.raises(AuthError, match="invalid or has expired"):
            auth.recover_session({"token_hash": "abc", "type": "recovery"})


class TestUpdatePassword:
    def test_update(self, supabase):
        supabase.auth.update_user.return_value = SimpleNamespace(user=make_user())
        auth.update_password("new-secret-1", "new-secret-1")
        supabase.auth.update_user.assert_called_once_with({"password": "new-secret-1"})

    @pytest.mark.parametrize(
        "password,confirm,message",
        [
            ("new-secret-1", "new-secret-2", "do not match"),
            ("short", "short", "at least 8"),
        ],
    )
    def test_rejected_before_server(self, supabase, password, confirm, message):
        with pytest.raises(AuthError, match=message):
            auth.update_password(password, confirm)
        supabase.auth.update_user.assert_not_called()

    def test_server_error_is_wrapped(self, supabase):
        supabase.auth.update_user.side_effect = RuntimeError("New password should be different")
        with pytest.raises(AuthError, match="should be different"):
            auth.update_password("new-secret-1", "new-secret-1")
