import os
import logging
from typing import Any, Optional

from pymonad.either import Either, Left, Right
from google_auth_oauthlib.flow import InstalledAppFlow
from google.auth.transport.requests import Request
from google.oauth2.credentials import Credentials

from .domain.errors import AuthenticationError

logger = logging.getLogger(__name__)

# Listing playlists and their items only needs read access.
SCOPES = ["https://www.googleapis.com/auth/youtube.readonly"]


def _load_cached_token(token_file: str) -> Either[AuthenticationError, Optional[Any]]:
    if not os.path.exists(token_file):
        return Right(None)
    logger.info(f"Token file '{token_file}' found.")
    try:
        return Right(Credentials.from_authorized_user_file(token_file, SCOPES))
    except (ValueError, OSError) as e:
        logger.error(f"Error reading token file: {e}")
        return Left(AuthenticationError(f"Corrupt or invalid token file: {e}"))


def _refresh(creds) -> Optional[Any]:
    logger.info("Token expired, attempting refresh...")
    try:
        creds.refresh(Request())
    except Exception as e:
        logger.error(f"Token refresh failed: {e}. Starting full flow.")
        return None
    logger.info("Token refreshed successfully.")
    return creds


def _run_installed_app_flow(client_secrets_file: str) -> Either[AuthenticationError, Any]:
    logger.info("No valid token found, starting new authentication flow.")
    if not os.path.exists(client_secrets_file):
        logger.error(f"Secrets file '{client_secrets_file}' not found.")
        return Left(
            AuthenticationError(
                f"File '{client_secrets_file}' not found. "
                "Provide an API key or download it from the Google Cloud Console."
            )
        )
    try:
        flow = InstalledAppFlow.from_client_secrets_file(client_secrets_file, SCOPES)
        creds = flow.run_local_server(port=0)
    except Exception as e:
        logger.error(f"Authentication flow failed: {e}")
        return Left(AuthenticationError(f"Authentication flow failed: {e}"))
    logger.info("Authentication successful via local flow.")
    return Right(creds)


def _save_token(creds, token_file: str) -> Either[AuthenticationError, Any]:
    try:
        with open(token_file, "w") as token:
            token.write(creds.to_json())
    except OSError as e:
        logger.error(f"Could not save token: {e}")
        return Left(AuthenticationError(f"Could not save token: {e}"))
    logger.info(f"Token saved to '{token_file}'.")
    return Right(creds)


def get_credentials(
    token_file: str = "token.json", client_secrets_file: str = "client_secret.json"
) -> Either[AuthenticationError, Any]:
    """
    Returns OAuth credentials allowing read access to YouTube playlists.

    A cached token is reused, and refreshed when expired; otherwise the
    installed-app flow runs with the client secrets file. New or refreshed
    tokens are written back to `token_file`.

    Returns:
        Either: A Right(credentials) or a Left(AuthenticationError).
    """
    cached = _load_cached_token(token_file)
    if cached.is_left():
        return cached

    creds = cached.value
    if creds and creds.valid:
        logger.info("Valid credentials obtained.")
        return Right(creds)

    if creds and creds.expired and creds.refresh_token:
        creds = _refresh(creds)

    obtained = Right(creds) if creds else _run_installed_app_flow(client_secrets_file)
    result = obtained.bind(lambda c: _save_token(c, token_file))
    if result.is_right():
        logger.info("Valid credentials obtained.")
    return result
