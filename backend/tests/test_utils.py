"""Shared test utilities."""

import secrets


def fake_discord_token() -> str:
    """A plaintext token shaped like a Discord bot token (not hex)."""
    return f"MTE{secrets.token_urlsafe(21)}.{secrets.token_urlsafe(4)}.{secrets.token_urlsafe(27)}"


def bot_payload(**overrides) -> dict:
    """Request body for POST /bots."""
    payload = {
        "name": "Helper",
        "client_id": "123456789012345678",
        "token": fake_discord_token(),
    }
    payload.update(overrides)
    return payload
