"""
Amazon Cognito client for sign-up, sign-in and sign-out.

This module wraps the Cognito user-pool API calls the UI needs. The user's
Cognito ``sub`` is the caller id used by every row-level and storage policy.

Module Input:
    - Email, password and optional display name from the auth forms
    - Access tokens from the current session
    - Pool/client configuration from settings

Module Output:
    - AuthSession objects for signed-in users
    - AuthError with user-facing messages on failure
"""

import base64
import hashlib
import hmac
from typing import Dict, List, Optional

import boto3
from botocore.exceptions import ClientError, BotoCoreError
from pydantic import BaseModel

from EAP.core.exceptions import AuthError, ConfigError
from EAP.core.logging_config import get_logger
from EAP.core.settings import settings

logger = get_logger(__name__)

# Cognito error code -> message shown to the user
FRIENDLY_ERRORS: Dict[str, str] = {
    "NotAuthorizedException": "Invalid email or password",
    "UserNotFoundException": "Invalid email or password",
    "UsernameExistsException": "An account with this email already exists",
    "UserNotConfirmedException": "Please confirm your email before signing in",
    "CodeMismatchException": "The confirmation code is incorrect",
    "ExpiredCodeException": "The confirmation code has expired",
    "InvalidPasswordException": "Password does not meet the requirements",
    "TooManyRequestsException": "Too many attempts, please try again later",
}


class AuthSession(BaseModel):
    """The signed-in user as seen by the rest of the application."""
    user_id: str
    email: str
    display_name: Optional[str] = None
    access_token: str = ""
    id_token: str = ""
    refresh_token: Optional[str] = None


def _attributes_to_dict(attributes: List[Dict[str, str]]) -> Dict[str, str]:
    return {item["Name"]: item["Value"] for item in attributes}


class CognitoAuthClient:
    """
    Managed authentication against one Cognito app client.

    Attributes:
        client_id (str): Cognito app client id
        _client_secret (Optional[str]): App client secret, if any
        _idp: Boto3 cognito-idp client
    """

    def __init__(
        self,
        client_id: Optional[str] = None,
        client_secret: Optional[str] = None,
        client=None
    ):
        self.client_id = client_id or settings.cognito_client_id
        self._client_secret = client_secret or settings.cognito_client_secret

        if not self.client_id:
            raise ConfigError(
                "Cognito app client id is not configured",
                details={"setting": "COGNITO_CLIENT_ID"}
            )

        if client is not None:
            self._idp = client
        else:
            try:
                self._idp = boto3.Session(**settings.get_aws_session_kwargs()).client("cognito-idp")
            except (BotoCoreError, ValueError) as e:
                raise ConfigError(
                    "Failed to initialize Cognito client",
                    details={"error": str(e), "client_id": self.client_id}
                )

        logger.info(f"Initialized CognitoAuthClient for app client '{self.client_id}'")

    def _secret_hash(self, username: str) -> Optional[str]:
        """Base64 HMAC-SHA256 of ``username + client_id`` keyed by the client secret."""
        if not self._client_secret:
            return None
        digest = hmac.new(
            self._client_secret.encode("utf-8"),
            (username + self.client_id).encode("utf-8"),
            hashlib.sha256
        ).digest()
        return base64.b64encode(digest).decode("utf-8")

    def _with_secret(self, username: str, params: Dict) -> Dict:
        secret_hash = self._secret_hash(username)
        if secret_hash:
            params["SecretHash"] = secret_hash
        return params

    def _to_auth_error(self, error: Exception, action: str) -> AuthError:
        if isinstance(error, ClientError):
            code = error.response.get("Error", {}).get("Code", "Unknown")
            raw = error.response.get("Error", {}).get("Message") or str(error)
            logger.warning(f"Cognito {action} failed: {code} - {raw}")
            return AuthError(FRIENDLY_ERRORS.get(code, raw), details={"code": code, "action": action})
        logger.error(f"Cognito {action} failed: {error}")
        return AuthError(str(error), details={"action": action})

    def sign_up(self, email: str, password: str, display_name: Optional[str] = None) -> bool:
        """
        Register a new user.

        Returns:
            bool: True if the user is already confirmed (no code needed)

        Raises:
            AuthError: If Cognito rejects the sign-up
        """
        attributes = [{"Name": "email", "Value": email}]
        if display_name:
            attributes.append({"Name": "name", "Value": display_name})

        params = self._with_secret(email, {
            "ClientId": self.client_id,
            "Username": email,
            "Password": password,
            "UserAttributes": attributes,
        })
        try:
            response = self._idp.sign_up(**params)
        except (ClientError, BotoCoreError) as e:
            raise self._to_auth_error(e, "sign_up")

        logger.info(f"Signed up {email} (confirmed={response.get('UserConfirmed', False)})")
        return bool(response.get("UserConfirmed", False))

    def confirm_sign_up(self, email: str, code: str) -> None:
        """Confirm a sign-up with the emailed code."""
        params = self._with_secret(email, {
            "ClientId": self.client_id,
            "Username": email,
            "ConfirmationCode": code.strip(),
        })
        try:
            self._idp.confirm_sign_up(**params)
        except (ClientError, BotoCoreError) as e:
            raise self._to_auth_error(e, "confirm_sign_up")
        logger.info(f"Confirmed {email}")

    def sign_in(self, email: str, password: str) -> AuthSession:
        """
        Authenticate with email and password.

        Raises:
            AuthError: On bad credentials or when Cognito answers with a
                challenge (e.g. NEW_PASSWORD_REQUIRED) instead of tokens
        """
        auth_parameters = {"USERNAME": email, "PASSWORD": password}
        secret_hash = self._secret_hash(email)
        if secret_hash:
            auth_parameters["SECRET_HASH"] = secret_hash

        try:
            response = self._idp.initiate_auth(
                ClientId=self.client_id,
                AuthFlow="USER_PASSWORD_AUTH",
                AuthParameters=auth_parameters,
            )
        except (ClientError, BotoCoreError) as e:
            raise self._to_auth_error(e, "sign_in")

        result = response.get("AuthenticationResult")
        if not result:
            challenge = response.get("ChallengeName", "unknown")
            raise AuthError(
                "Additional verification is required to sign in",
                details={"challenge": challenge}
            )

        session = self.get_user(result["AccessToken"])
        session.id_token = result.get("IdToken", "")
        session.refresh_token = result.get("RefreshToken")
        logger.info(f"Signed in user {session.user_id}")
        return session

    def get_user(self, access_token: str) -> AuthSession:
        """Resolve an access token to the user's identity."""
        try:
            response = self._idp.get_user(AccessToken=access_token)
        except (ClientError, BotoCoreError) as e:
            raise self._to_auth_error(e, "get_user")

        attributes = _attributes_to_dict(response.get("UserAttributes", []))
        return AuthSession(
            user_id=attributes.get("sub", response.get("Username", "")),
            email=attributes.get("email", response.get("Username", "")),
            display_name=attributes.get("name"),
            access_token=access_token,
        )

    def sign_out(self, session: AuthSession) -> None:
        """Revoke all tokens issued to the session's user."""
        try:
            self._idp.global_sign_out(AccessToken=session.access_token)
        except (ClientError, BotoCoreError) as e:
            raise self._to_auth_error(e, "sign_out")
        logger.info(f"Signed out user {session.user_id}")
