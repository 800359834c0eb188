"""Interactive login for the source account.

The source reader depends on an authenticator capability instead of prompting
directly, so headless deployments can swap in NonInteractiveAuthenticator.
Running this module prints a SESSION_STRING for the .env file.
"""

import asyncio
import logging
import os
from getpass import getpass

import qrcode
from dotenv import load_dotenv
from telethon import TelegramClient, errors

from client import build_client, export_session
from core.errors import ConnectivityError

LOGGER = logging.getLogger(__name__)


def _print_qr(url: str) -> None:
    qr = qrcode.QRCode(border=1)
    qr.add_data(url)
    qr.make(fit=True)
    qr.print_ascii(invert=True)


def _resolve_2fa_password() -> str:
    password = os.getenv("2FA")
    if password:
        return password
    return getpass("2FA password: ")


async def _authorize_with_qr(client: TelegramClient) -> None:
    qr = await client.qr_login()
    _print_qr(qr.url)
    await qr.wait(timeout=120)


async def _authorize_with_phone(client: TelegramClient) -> None:
    phone = os.getenv("PHONE") or input("Phone number (international format, e.g. +1234567890): ").strip()
    if not phone:
        raise ConnectivityError("Phone number is required")
    await client.send_code_request(phone)
    code = input("Login code: ").strip()
    if not code:
        raise ConnectivityError("Verification code is required")
    try:
        await client.sign_in(phone=phone, code=code)
    except errors.SessionPasswordNeededError:
        LOGGER.warning("Two-factor authentication is enabled. Please provide your password.")
        await client.sign_in(password=_resolve_2fa_password())
    except errors.PhoneCodeInvalidError as exc:
        raise ConnectivityError("Invalid verification code. Please try again.") from exc
    except errors.PhoneNumberInvalidError as exc:
        raise ConnectivityError("Invalid phone number format. Use format: +1234567890") from exc
    except errors.PhoneNumberUnoccupiedError as exc:
        raise ConnectivityError("Phone number not registered with Telegram.") from exc


def _pick_login_method() -> str:
    method = (os.getenv("LOGIN_METHOD") or "").strip().lower()
    if method in {"qr", "phone"}:
        return method
    while True:
        print("")
        print("Login methods:")
        print("[1] QR code")
        print("[2] Phone code")
        print("[3] Exit")
        print("Select a login method: \n")
        choice = input("jobrelay > ").strip()
        if choice == "1":
            return "qr"
        elif choice == "2":
            return "phone"
        elif choice == "3":
            raise SystemExit(0)
        else:
            print("Invalid option. Please choose 1, 2, or 3.")


class InteractiveAuthenticator:
    """Prompt-driven login (QR or phone code, with 2FA fallback)."""

    async def authenticate(self, client: TelegramClient) -> str:
        if not await client.is_user_authorized():
            try:
                method = _pick_login_method()
                if method == "phone":
                    await _authorize_with_phone(client)
                else:
                    await _authorize_with_qr(client)
            except errors.SessionPasswordNeededError:
                await client.sign_in(password=_resolve_2fa_password())
            LOGGER.info("Successfully signed in!")
        return export_session(client)


class NonInteractiveAuthenticator:
    """Refuses to prompt; used when no terminal is available."""

    async def authenticate(self, client: TelegramClient) -> str:
        raise ConnectivityError(
            "Telegram session is not authorized and interactive login is disabled. "
            "Run `jobrelay session` and set SESSION_STRING."
        )


async def main() -> None:
    load_dotenv()
    api_id = os.getenv("API_ID")
    api_hash = os.getenv("API_HASH")
    if not api_id or not api_hash:
        raise SystemExit("Missing API_ID or API_HASH in environment")

    client = build_client(int(api_id), api_hash, os.getenv("SESSION_STRING", ""))
    await client.connect()

    session_string = await InteractiveAuthenticator().authenticate(client)

    me = await client.get_me()
    LOGGER.info("Logged in as: %s", me.first_name)
    print("")
    print("Save this session string to your .env file:")
    print(f"SESSION_STRING={session_string}")

    await client.disconnect()


if __name__ == "__main__":
    asyncio.run(main())
