"""Tests for command templates."""

import pytest

from control_center.models.template import Template
from control_center.services.bot_service import create_bot
from control_center.services.command_service import DuplicateCommandError
from control_center.services.template_service import (
    DEFAULT_TEMPLATES,
    DuplicateTemplateError,
    create_command_from_template,
    create_template,
    seed_default_templates,
)
from tests.test_utils import bot_payload


def template_payload(**overrides) -> dict:
    payload = {
        "name": "Weather",
        "description": "Report the weather",
        "category": "utility",
        "command_structure": {
            "name": "weather",
            "description": "Current weather for a city",
            "options": [{"name": "city", "description": "City", "type": "string", "required": True}],
        },
        "prompt_structure": {"content": "Weather in {city}?", "variables": ["city"]},
        "api_integration_structure": {"service": "perplexity", "settings": {"model": "sonar"}},
    }
    payload.update(overrides)
    return payload


@pytest.fixture
def bot(db_session, cipher):
    payload = bot_payload()
    return create_bot(
        db_session, cipher, name=payload["name"], client_id=payload["client_id"], token=payload["token"]
    )


class TestTemplateService:
    def test_tags_default_to_empty(self, db_session):
        template = create_template(
            db_session,
            name="Bare",
            description="No tags",
            category="basic",
            command_structure={"name": "bare", "description": "Bare"},
        )
        assert template.command_structure["tags"] == []

    def test_duplicate_name_rejected(self, db_session):
        create_template(db_session, **template_payload())
        with pytest.raises(DuplicateTemplateError):
            create_template(db_session, **template_payload())

    def test_apply_creates_command_with_prompt(self, db_session, bot):
        template = create_template(db_session, **template_payload())

        command = create_command_from_template(db_session, bot, template)

        assert command.name == "weather"
        assert command.bot_id == bot.id
        assert command.options[0]["name"] == "city"
        assert command.prompt.content == "Weather in {city}?"
        assert command.prompt.variables == ["city"]
        assert command.prompt.api_integration == "perplexity"

    def test_apply_with_rename(self, db_session, bot):
        template = create_template(db_session, **template_payload())

        command = create_command_from_template(
            db_session, bot, template, name="forecast", description="Forecast"
        )

        assert command.name == "forecast"
        assert command.description == "Forecast"

    def test_apply_without_prompt_or_service(self, db_session, bot):
        template = create_template(
            db_session,
            **template_payload(prompt_structure=None, api_integration_structure={"service": "none"}),
        )

        command = create_command_from_template(db_session, bot, template)

        assert command.prompt is None

    def test_apply_twice_conflicts(self, db_session, bot):
        template = create_template(db_session, **template_payload())
        create_command_from_template(db_session, bot, template)

        with pytest.raises(DuplicateCommandError):
            create_command_from_template(db_session, bot, template)

    def test_seed_is_idempotent(self, db_session):
        assert seed_default_templates(db_session) == len(DEFAULT_TEMPLATES)
        assert seed_default_templates(db_session) == 0
        assert db_session.query(Template).count() == len(DEFAULT_TEMPLATES)

    def test_seeded_templates_apply_cleanly(self, db_session, bot):
        seed_default_templates(db_session)

        for template in db_session.query(Template).all():
            command = create_command_from_template(db_session, bot, template)
            assert command.prompt is not None


class TestTemplatesApi:
    def test_create_and_get(self, client):
        response = client.post("/api/v1/templates", json=template_payload())

        assert response.status_code == 201
        data = response.json()
        assert data["command_structure"]["difficulty"] == "beginner"
        assert data["command_structure"]["tags"] == []
        assert data["api_integration_structure"]["service"] == "perplexity"

        fetched = client.get(f"/api/v1/templates/{data['id']}")
        assert fetched.json()["name"] == "Weather"

    def test_duplicate_returns_409(self, client):
        client.post("/api/v1/templates", json=template_payload())
        response = client.post("/api/v1/templates", json=template_payload())
        assert response.status_code == 409

    def test_invalid_category_rejected(self, client):
        response = client.post("/api/v1/templates", json=template_payload(category="Not Valid"))
        assert response.status_code == 422

    def test_malformed_prompt_variable_rejected(self, client):
        response = client.post(
            "/api/v1/templates",
            json=template_payload(
                prompt_structure={"content": "Say {x}", "variables": ["some thing!"]}
            ),
        )
        assert response.status_code == 422

    def test_apply_skips_malformed_placeholders(self, client):
        bot_id = client.post("/api/v1/bots", json=bot_payload()).json()["id"]
        template = client.post(
            "/api/v1/templates",
            json=template_payload(prompt_structure={"content": "Weather in {some city!} and {city}"}),
        ).json()

        response = client.post(
            f"/api/v1/templates/{template['id']}/apply", json={"bot_id": bot_id}
        )

        assert response.status_code == 201
        assert response.json()["prompt"]["variables"] == ["city"]

    def test_unknown_service_rejected(self, client):
        response = client.post(
            "/api/v1/templates",
            json=template_payload(api_integration_structure={"service": "skynet"}),
        )
        assert response.status_code == 422

    def test_filter_by_category(self, client):
        client.post("/api/v1/templates", json=template_payload())
        client.post(
            "/api/v1/templates",
            json=template_payload(name="Joke", category="fun"),
        )

        response = client.get("/api/v1/templates", params={"category": "fun"})

        assert [t["name"] for t in response.json()] == ["Joke"]
        assert len(client.get("/api/v1/templates").json()) == 2

    def test_update_and_clear_prompt(self, client):
        created = client.post("/api/v1/templates", json=template_payload()).json()

        response = client.put(
            f"/api/v1/templates/{created['id']}",
            json={"description": "Updated", "prompt_structure": None},
        )

        assert response.status_code == 200
        assert response.json()["description"] == "Updated"
        assert response.json()["prompt_structure"] is None

    def test_rename_to_existing_returns_409(self, client):
        client.post("/api/v1/templates", json=template_payload())
        other = client.post("/api/v1/templates", json=template_payload(name="Other")).json()

        response = client.put(f"/api/v1/templates/{other['id']}", json={"name": "Weather"})

        assert response.status_code == 409

    def test_delete(self, client):
        created = client.post("/api/v1/templates", json=template_payload()).json()

        assert client.delete(f"/api/v1/templates/{created['id']}").status_code == 204
        assert client.get(f"/api/v1/templates/{created['id']}").status_code == 404

    def test_apply(self, client):
        bot_id = client.post("/api/v1/bots", json=bot_payload()).json()["id"]
        template = client.post("/api/v1/templates", json=template_payload()).json()

        response = client.post(
            f"/api/v1/templates/{template['id']}/apply", json={"bot_id": bot_id}
        )

        assert response.status_code == 201
        assert response.json()["name"] == "weather"
        assert response.json()["prompt"]["variables"] == ["city"]

        again = client.post(f"/api/v1/templates/{template['id']}/apply", json={"bot_id": bot_id})
        assert again.status_code == 409

    def test_apply_to_missing_bot(self, client):
        template = client.post("/api/v1/templates", json=template_payload()).json()

        response = client.post(
            f"/api/v1/templates/{template['id']}/apply", json={"bot_id": "missing"}
        )

        assert response.status_code == 404

    def test_apply_missing_template(self, client):
        response = client.post("/api/v1/templates/missing/apply", json={"bot_id": "x"})
        assert response.status_code == 404
