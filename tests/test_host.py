import io

import pytest

from chronicle.host import GREEN, RESET, ConsoleHost, CredentialChoice


def _host(answers=(), secret="", **kwargs):
    replies = iter(answers)

    def fake_input(_prompt):
        value = next(replies)
        if isinstance(value, BaseException):
            raise value
        return value

    out = io.StringIO()
    host = ConsoleHost(
        out=out, input_fn=fake_input, secret_fn=lambda _p: secret, **kwargs
    )
    return host, out


def test_edit_message_enter_keeps_draft():
    host, out = _host([""])
    assert host.edit_message("chore: update a.ts") == "chore: update a.ts"
    assert "Proposed commit message: chore: update a.ts" in out.getvalue()


def test_edit_message_replacement():
    host, _ = _host(["feat: better words"])
    assert host.edit_message("chore: update") == "feat: better words"


@pytest.mark.parametrize("exc", [EOFError(), KeyboardInterrupt()])
def test_edit_message_cancel(exc):
    host, _ = _host([exc])
    assert host.edit_message("chore: update") is None


@pytest.mark.parametrize(
    "answer, expected",
    [
        ("y", CredentialChoice.SUPPLY),
        ("YES", CredentialChoice.SUPPLY),
        ("d", CredentialChoice.DISABLE_AI),
        ("n", CredentialChoice.SKIP),
        ("", CredentialChoice.SKIP),
    ],
)
def test_credential_prompt(answer, expected):
    host, _ = _host([answer])
    assert host.ask_credential_setup() is expected


def test_auto_accept_does_not_prompt():
    host, _ = _host([])
    host.auto_accept = True
    assert host.edit_message("chore: update") == "chore: update"
    assert host.ask_credential_setup() is CredentialChoice.SKIP


def test_prompt_secret_strips_and_blanks():
    host, _ = _host(secret="  gsk_abc  ")
    assert host.prompt_secret() == "gsk_abc"
    host, _ = _host(secret="   ")
    assert host.prompt_secret() is None


def test_color_only_when_enabled():
    host, out = _host(color=True)
    host.info("done")
    assert out.getvalue() == f"{GREEN}done{RESET}\n"
    host, out = _host(color=False)
    host.info("done")
    assert out.getvalue() == "done\n"
