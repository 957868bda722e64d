"""
Tests for the command-line front end.
"""

import pytest

from ..cli import build_parser, main
from .conftest import USER, auth_payload, balance_payload, fail, ok, transform_payload


class TestParser:

    def test_transform_defaults(self):
        args = build_parser().parse_args(["transform", "photo.jpg"])

        assert args.background == "cartoon"
        assert args.prompt is None

    def test_subscribe_rejects_none(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args(["subscribe", "none", "--receipt", "r"])


class TestMain:
    """Tests for main() with an injected client."""

    def test_no_command(self, capsys):
        assert main([]) == 1
        assert "usage" in capsys.readouterr().out

    def test_bad_environment(self, monkeypatch, capsys):
        monkeypatch.setenv("SNAPTOY_TIMEOUT", "soon")

        assert main(["health"]) == 2
        assert "SNAPTOY_TIMEOUT" in capsys.readouterr().out

    def test_health(self, api, fake_session, capsys):
        fake_session.queue("GET", "/health", ok({"status": "healthy", "uptime": 42}))

        assert main(["health"], api=api) == 0
        out = capsys.readouterr().out
        assert "Status: healthy" in out
        assert "Uptime: 42s" in out

    def test_sign_in(self, api, fake_session, token_store, capsys):
        fake_session.queue("POST", "/auth/apple", ok(auth_payload("tok-1", credits=3)))

        assert main(["sign-in", "apple-jwt", "--first-name", "Ada"], api=api) == 0

        assert token_store.get() == "tok-1"
        body = fake_session.calls[0].kwargs["json"]
        assert body == {"identityToken": "apple-jwt", "user": {"firstName": "Ada"}}
        assert "Signed in as Ada Lovelace" in capsys.readouterr().out

    def test_sign_in_failure(self, api, fake_session, capsys):
        fake_session.queue("POST", "/auth/apple", fail(401, "Bad", "INVALID_TOKEN"))

        assert main(["sign-in", "apple-jwt"], api=api) == 1
        assert "Sign-in failed" in capsys.readouterr().out

    def test_sign_in_blank_token(self, api, fake_session, capsys):
        assert main(["sign-in", "   "], api=api) == 1
        assert "valid identity token" in capsys.readouterr().out
        assert fake_session.calls == []

    def test_whoami_signed_out(self, api, capsys):
        assert main(["whoami"], api=api) == 1
        assert "Not signed in" in capsys.readouterr().out

    def test_whoami(self, api, fake_session, token_store, capsys):
        token_store.set("tok")
        fake_session.queue("GET", "/auth/validate", ok({"valid": True, "user": USER}))

        assert main(["whoami"], api=api) == 0
        assert "usr_123" in capsys.readouterr().out

    def test_sign_out(self, api, token_store, capsys):
        token_store.set("tok")

        assert main(["sign-out"], api=api) == 0
        assert token_store.get() is None

    def test_styles_and_tiers_offline(self, api, fake_session, capsys):
        """Static listings need no backend."""
        assert main(["styles"], api=api) == 0
        assert main(["tiers"], api=api) == 0

        out = capsys.readouterr().out
        assert "LEGO World" in out
        assert "40 credits per week for $5.00" in out
        assert fake_session.calls == []

    def test_credits(self, api, fake_session, capsys):
        fake_session.queue("GET", "/api/users/credits", ok(balance_payload(4, "standard")))

        assert main(["credits"], api=api) == 0
        out = capsys.readouterr().out
        assert "Credits: 4" in out
        assert "Tier: standard" in out

    def test_credits_error(self, api, fake_session, capsys):
        fake_session.queue("GET", "/api/users/credits", fail(503, "down"))

        assert main(["credits"], api=api) == 1
        assert "temporarily unavailable" in capsys.readouterr().out

    def test_transform(self, api, fake_session, image_file, capsys):
        fake_session.queue("GET", "/api/users/credits", ok(balance_payload(2)), ok(balance_payload(1)))
        fake_session.queue("POST", "/api/transform", ok(transform_payload()))

        assert main(["transform", str(image_file), "-b", "lego"], api=api) == 0
        out = capsys.readouterr().out
        assert "Transformation tr_1: completed" in out
        assert "Credits left: 1" in out

    def test_transform_without_credits(self, api, fake_session, image_file, capsys):
        fake_session.queue("GET", "/api/users/credits", ok(balance_payload(0)))

        assert main(["transform", str(image_file)], api=api) == 1
        out = capsys.readouterr().out
        assert "Insufficient credits" in out
        assert "Required: 1, available: 0" in out
        assert fake_session.calls_to("POST", "/api/transform") == []

    def test_history(self, api, fake_session, capsys):
        fake_session.queue("GET", "/api/transform/history", ok(
            [transform_payload()],
            meta={"total": 2, "limit": 1, "offset": 0, "hasNext": True},
        ))

        assert main(["history", "--limit", "1"], api=api) == 0
        out = capsys.readouterr().out
        assert "tr_1" in out
        assert "--offset 1" in out
        assert fake_session.calls[0].kwargs["params"] == {"limit": 1, "offset": 0}

    def test_purchase(self, api, fake_session, capsys):
        fake_session.queue("POST", "/api/credits/purchase", ok({
            "publicId": "pur_1", "creditsAdded": 8, "amount": 1.0, "status": "completed",
        }))
        fake_session.queue("GET", "/api/users/credits", ok(balance_payload(8)))

        assert main(["purchase", "1", "--receipt", "rcpt"], api=api) == 0
        out = capsys.readouterr().out
        assert "+8 credits" in out
        assert "Credits: 8" in out

    def test_subscribe_failure(self, api, fake_session, capsys):
        fake_session.queue("PUT", "/api/credits/subscription", fail(400, "Receipt expired", "SUBSCRIPTION_ERROR"))

        assert main(["subscribe", "pro", "--receipt", "r"], api=api) == 1
        assert "Receipt expired" in capsys.readouterr().out
