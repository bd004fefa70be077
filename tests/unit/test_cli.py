"""Unit tests for the URL commands."""

from click.testing import CliRunner

from frameproxy.cli.main import cli


def test_encode_command(monkeypatch):
    """Test printing the proxied form of a URL."""
    monkeypatch.delenv("FRAMEPROXY_PUBLIC_BASE_URL", raising=False)
    runner = CliRunner()

    result = runner.invoke(cli, ["encode", "https://example.com/a?b=1", "--proxy-base", "https://proxy.test"])

    assert result.exit_code == 0
    assert result.output.strip() == "https://proxy.test/?site=https%3A%2F%2Fexample.com%2Fa%3Fb%3D1"


def test_encode_rejects_invalid_url():
    """Test encoding something that is not an absolute URL."""
    runner = CliRunner()

    result = runner.invoke(cli, ["encode", "example.com"])

    assert result.exit_code == 1
    assert "Invalid target URL" in result.output


def test_decode_command():
    """Test showing the target of a proxied URL."""
    runner = CliRunner()

    result = runner.invoke(cli, ["decode", "https://proxy.test/?site=https%3A%2F%2Fexample.com%3A8443%2Fdocs"])

    assert result.exit_code == 0
    assert "example.com" in result.output
    assert "8443" in result.output


def test_decode_without_target():
    """Test decoding a URL that carries no target."""
    runner = CliRunner()

    result = runner.invoke(cli, ["decode", "https://proxy.test/about"])

    assert result.exit_code == 1
    assert "Missing ?site= parameter" in result.output


def test_serve_public_base_url(monkeypatch):
    """Test that serve passes --public-base-url through to the running server."""
    started = []
    monkeypatch.setattr(
        "frameproxy.proxy.server.ProxyServer.run",
        lambda self: started.append(self.settings),
    )
    runner = CliRunner()

    result = runner.invoke(cli, ["serve", "--port", "3000", "--public-base-url", "http://localhost:3000"])

    assert result.exit_code == 0
    assert started[0].port == 3000
    assert started[0].public_base_url == "http://localhost:3000"
    assert "http://localhost:3000" in result.output
