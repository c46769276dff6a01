"""Tests for the bot service functions."""

import pytest

from control_center.models.bot import Bot, BotStatus
from control_center.models.command import Command, CommandPrompt
from control_center.services.bot_service import (
    create_bot,
    delete_bot,
    get_bot,
    get_bot_token,
    list_bots,
    reencrypt_bot_tokens,
    update_bot,
    update_bot_status,
)
from control_center.services.command_service import create_command
from control_center.services.encryption import IntegrityError, TokenCipher, looks_encrypted
from tests.test_utils import fake_discord_token


@pytest.fixture
def token():
    return fake_discord_token()


@pytest.fixture
def bot(db_session, cipher, token):
    return create_bot(
        db=db_session,
        cipher=cipher,
        name="Helper",
        client_id="123456789012345678",
        token=token,
    )


class TestCreateBot:
    def test_token_is_encrypted_at_rest(self, db_session, cipher, bot, token):
        stored = db_session.query(Bot).filter(Bot.id == bot.id).one()

        assert stored.encrypted_token != token
        assert token not in stored.encrypted_token
        assert looks_encrypted(stored.encrypted_token)
        assert cipher.decrypt(stored.encrypted_token) == token

    def test_defaults(self, bot):
        assert bot.status == BotStatus.OFFLINE
        assert bot.settings == {"prefix": "!", "auto_restart": True, "log_level": "info"}
        assert bot.servers == []
        assert bot.last_active is None

    def test_partial_settings_are_merged_with_defaults(self, db_session, cipher, token):
        bot = create_bot(
            db_session, cipher, name="Music", client_id="223456789012345678", token=token,
            settings={"prefix": "?"},
        )
        assert bot.settings["prefix"] == "?"
        assert bot.settings["auto_restart"] is True

    def test_same_token_twice_stores_different_envelopes(self, db_session, cipher, token):
        first = create_bot(db_session, cipher, name="A", client_id="323456789012345678", token=token)
        second = create_bot(db_session, cipher, name="B", client_id="423456789012345678", token=token)

        assert first.encrypted_token != second.encrypted_token


class TestUpdateBot:
    def test_plaintext_token_is_encrypted(self, db_session, cipher, bot):
        new_token = fake_discord_token()

        updated = update_bot(db_session, cipher, bot, {"token": new_token})

        assert updated.encrypted_token != new_token
        assert cipher.decrypt(updated.encrypted_token) == new_token

    def test_existing_envelope_is_stored_verbatim(self, db_session, cipher, bot, token):
        envelope = bot.encrypted_token

        updated = update_bot(db_session, cipher, bot, {"token": envelope, "name": "Renamed"})

        assert updated.encrypted_token == envelope
        assert updated.name == "Renamed"
        assert cipher.decrypt(updated.encrypted_token) == token

    def test_update_without_token_keeps_token(self, db_session, cipher, bot):
        envelope = bot.encrypted_token

        updated = update_bot(db_session, cipher, bot, {"client_id": "999999999999999999"})

        assert updated.encrypted_token == envelope
        assert updated.client_id == "999999999999999999"

    def test_settings_are_merged(self, db_session, cipher, bot):
        updated = update_bot(db_session, cipher, bot, {"settings": {"prefix": "$", "theme": "dark"}})

        assert updated.settings == {
            "prefix": "$",
            "auto_restart": True,
            "log_level": "info",
            "theme": "dark",
        }

    def test_avatar_can_be_cleared(self, db_session, cipher, bot):
        update_bot(db_session, cipher, bot, {"avatar_url": "https://cdn.example.com/a.png"})
        assert bot.avatar_url == "https://cdn.example.com/a.png"

        updated = update_bot(db_session, cipher, bot, {"avatar_url": None})
        assert updated.avatar_url is None

    def test_servers_are_replaced(self, db_session, cipher, bot):
        servers = [{"id": "111111111111111111", "name": "Home", "enabled": True, "channels": []}]

        updated = update_bot(db_session, cipher, bot, {"servers": servers})

        assert updated.servers == servers

    def test_updated_at_advances(self, db_session, cipher, bot):
        before = bot.updated_at
        updated = update_bot(db_session, cipher, bot, {"name": "Later"})
        assert updated.updated_at >= before


class TestUpdateBotStatus:
    @pytest.mark.parametrize("status", list(BotStatus))
    def test_status_changes_without_touching_token(self, db_session, bot, status):
        envelope = bot.encrypted_token

        updated = update_bot_status(db_session, bot, status)

        assert updated.status == status
        assert updated.last_active is not None
        assert updated.encrypted_token == envelope


class TestQueries:
    def test_get_bot(self, db_session, bot):
        assert get_bot(db_session, bot.id).id == bot.id
        assert get_bot(db_session, "missing") is None

    def test_list_bots_filters_by_user(self, db_session, cipher, bot):
        create_bot(
            db_session, cipher, name="Owned", client_id="523456789012345678",
            token=fake_discord_token(), user_id="user-1",
        )

        assert len(list_bots(db_session)) == 2
        owned = list_bots(db_session, user_id="user-1")
        assert [b.name for b in owned] == ["Owned"]


class TestDeleteBot:
    def test_delete_cascades_to_commands_and_prompts(self, db_session, bot):
        create_command(
            db_session, bot=bot, name="ask", description="Ask",
            prompt={"content": "Q: {question}"},
        )

        delete_bot(db_session, bot)

        assert db_session.query(Bot).count() == 0
        assert db_session.query(Command).count() == 0
        assert db_session.query(CommandPrompt).count() == 0


class TestBotToken:
    def test_get_bot_token_decrypts(self, cipher, bot, token):
        assert get_bot_token(bot, cipher) == token

    def test_get_bot_token_with_wrong_key_fails(self, bot):
        with pytest.raises(IntegrityError):
            get_bot_token(bot, TokenCipher("rotated-without-reencrypting"))


class TestReencryptBotTokens:
    def test_tokens_readable_under_new_key(self, db_session, cipher, bot, token):
        new_cipher = TokenCipher("the-next-encryption-secret")

        count = reencrypt_bot_tokens(db_session, cipher, new_cipher)

        assert count == 1
        db_session.refresh(bot)
        assert new_cipher.decrypt(bot.encrypted_token) == token
        with pytest.raises(IntegrityError):
            cipher.decrypt(bot.encrypted_token)

    def test_unreadable_token_aborts_without_changes(self, db_session, cipher, bot):
        envelope = bot.encrypted_token
        wrong_old = TokenCipher("not-the-key-in-use")

        with pytest.raises(IntegrityError):
            reencrypt_bot_tokens(db_session, wrong_old, TokenCipher("new-key"))

        db_session.refresh(bot)
        assert bot.encrypted_token == envelope
