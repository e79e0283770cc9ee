"""Sign-in for the dashboard.

The signed-in state is an explicit ``Session`` value kept by the caller
(the Streamlit app stores it in ``st.session_state``). Sign-in functions
never mutate a session; they return a new one wrapped in ``Right`` or an
error dict wrapped in ``Left``.
"""
import hmac
import logging
from dataclasses import dataclass, replace
from typing import Optional

from dishdash.functional import Either, Left, Right

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Session:
    is_admin: bool = False
    phone: Optional[str] = None
    otp_requested: bool = False
    user_id: Optional[str] = None

    @property
    def signed_in(self) -> bool:
        return self.is_admin or self.user_id is not None


class SharedSecretAuth:
    """Admin access granted by typing the configured shared secret."""

    def __init__(self, secret: str):
        self.secret = secret or ""

    def sign_in(self, session: Session, credentials: str) -> Either[dict, Session]:
        if not self.secret:
            return Left({"error": "not_configured", "message": "Admin secret is not configured"})
        if not hmac.compare_digest((credentials or "").encode(), self.secret.encode()):
            logger.info("rejected admin sign-in attempt")
            return Left({"error": "invalid_credentials", "message": "Invalid credentials"})
        return Right(replace(session, is_admin=True))


def sign_out(session: Session) -> Session:
    return Session()


class OtpAuth:
    """Phone number + one-time code, verified entirely by Supabase Auth."""

    def __init__(self, client, country_code: str = "+91"):
        self.client = client
        self.country_code = country_code

    def format_phone(self, phone: str) -> str:
        phone = (phone or "").strip().replace(" ", "")
        return phone if phone.startswith("+") else f"{self.country_code}{phone}"

    def request_code(self, session: Session, phone: str) -> Either[dict, Session]:
        if not (phone or "").strip():
            return Left({"error": "missing_field", "message": "Phone number is required"})
        formatted = self.format_phone(phone)
        try:
            self.client.auth.sign_in_with_otp({"phone": formatted})
        except Exception as e:
            logger.error("sending OTP to %s failed: %s", formatted, e)
            return Left({"error": "otp_send_failed", "message": str(e)})
        return Right(replace(session, phone=formatted, otp_requested=True))

    def verify_code(self, session: Session, token: str) -> Either[dict, Session]:
        if not session.otp_requested or not session.phone:
            return Left({"error": "otp_not_requested", "message": "Request a code first"})
        try:
            response = self.client.auth.verify_otp(
                {"phone": session.phone, "token": (token or "").strip(), "type": "sms"}
            )
        except Exception as e:
            logger.error("verifying OTP for %s failed: %s", session.phone, e)
            return Left({"error": "otp_verify_failed", "message": str(e)})

        user = getattr(response, "user", None)
        if user is None:
            return Left({"error": "otp_verify_failed", "message": "Verification returned no user"})
        return Right(replace(session, user_id=str(user.id), otp_requested=False))

    def sign_out(self, session: Session) -> Session:
        if session.user_id is not None:
            try:
                self.client.auth.sign_out()
            except Exception as e:
                # the local session is dropped either way
                logger.warning("remote sign-out failed: %s", e)
        return sign_out(session)
