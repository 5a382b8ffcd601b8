import asyncio
from pathlib import Path

from aiohttp import web
from aiohttp.test_utils import TestServer as LocalServer

from routeprobe.http_prober import HttpProber, make_session
from routeprobe.metrics import OutcomeKind, RouteDescriptor
from routeprobe.settings import ProbeConfig

UNREACHABLE = "http://127.0.0.1:1"


def make_app() -> web.Application:
    async def home(request):
        return web.Response(text="<html>home</html>", content_type="text/html")

    async def missing(request):
        return web.Response(status=404, text="not here")

    async def broken(request):
        return web.Response(status=500, text="boom")

    async def moved(request):
        raise web.HTTPFound("/")

    async def js_ok(request):
        return web.Response(text="console.log(1)", content_type="application/javascript")

    async def js_as_text(request):
        return web.Response(text="console.log(1)", content_type="text/javascript")

    async def js_wrong(request):
        return web.Response(text="<html></html>", content_type="text/html")

    async def slow(request):
        await asyncio.sleep(1)
        return web.Response(text="late", content_type="application/javascript")

    app = web.Application()
    app.router.add_get("/", home)
    app.router.add_get("/missing", missing)
    app.router.add_get("/broken", broken)
    app.router.add_get("/old", moved)
    app.router.add_get("/app.js", js_ok)
    app.router.add_get("/legacy.js", js_as_text)
    app.router.add_get("/wrong.js", js_wrong)
    app.router.add_get("/slow", slow)
    app.router.add_get("/slow.js", slow)
    return app


def with_server(tmp_path: Path, fn, **config_overrides):
    """Start a local app, build an HttpProber against it and run `fn(prober)`."""

    async def go():
        server = LocalServer(make_app())
        await server.start_server()
        try:
            config = ProbeConfig(
                base_url=str(server.make_url("/")),
                output_dir=str(tmp_path),
                **config_overrides,
            )
            async with make_session(config) as session:
                return await fn(HttpProber(session, config))
        finally:
            await server.close()

    return asyncio.run(go())


def probe_route(route: str):
    async def fn(prober):
        return await prober.probe(RouteDescriptor(index=0, route=route))
    return fn


def test_success_saves_body(tmp_path: Path):
    outcome = with_server(tmp_path, probe_route("/"))

    assert outcome.outcome_kind is OutcomeKind.SUCCESS
    assert outcome.status_code == 200
    saved = Path(outcome.artifact_path)
    assert saved == tmp_path / "root" / "default.html"
    assert saved.read_text(encoding="utf-8") == "<html>home</html>"
    assert outcome.artifact_size_bytes == len(b"<html>home</html>")
    assert outcome.auth_flow is None


def test_http_errors_still_save_body(tmp_path: Path):
    outcome = with_server(tmp_path, probe_route("/missing"))
    assert outcome.outcome_kind is OutcomeKind.HTTP_ERROR
    assert outcome.status_code == 404
    assert Path(outcome.artifact_path).read_text(encoding="utf-8") == "not here"

    outcome = with_server(tmp_path, probe_route("broken"))
    assert outcome.outcome_kind is OutcomeKind.HTTP_ERROR
    assert outcome.status_code == 500


def test_redirects_are_followed(tmp_path: Path):
    outcome = with_server(tmp_path, probe_route("/old"))
    assert outcome.outcome_kind is OutcomeKind.SUCCESS
    assert outcome.status_code == 200
    assert Path(outcome.artifact_path) == tmp_path / "old" / "default.html"


def test_unreachable_target_is_a_transport_error(tmp_path: Path):
    async def go():
        config = ProbeConfig(base_url=UNREACHABLE, output_dir=str(tmp_path), http_timeout_s=5)
        async with make_session(config) as session:
            return await HttpProber(session, config).probe(RouteDescriptor(index=4, route="/x"))

    outcome = asyncio.run(go())

    assert outcome.outcome_kind is OutcomeKind.TRANSPORT_ERROR
    assert outcome.index == 4
    assert outcome.status_code is None
    assert outcome.artifact_path is None
    assert outcome.error_message
    assert not (tmp_path / "x").exists()


def test_asset_mime_checks_pass(tmp_path: Path):
    async def fn(prober):
        return await prober.verify_asset_mime_types()

    checks = {"/app.js": "application/javascript", "/legacy.js": "application/javascript"}
    assert with_server(tmp_path, fn, asset_checks=checks) is True


def test_asset_mime_checks_warn_on_wrong_type_or_status(tmp_path: Path, capsys):
    async def fn(prober):
        return await prober.verify_asset_mime_types()

    assert with_server(tmp_path, fn, asset_checks={"/wrong.js": "application/javascript"}) is False
    assert with_server(tmp_path, fn, asset_checks={"/nope.js": "application/javascript"}) is False

    out = capsys.readouterr().out
    assert "WARN: /wrong.js has MIME type 'text/html'" in out
    assert "WARN: /nope.js returned status 404" in out


def test_request_timeout_is_a_transport_error(tmp_path: Path):
    outcome = with_server(tmp_path, probe_route("/slow"), http_timeout_s=0.2)

    assert outcome.outcome_kind is OutcomeKind.TRANSPORT_ERROR
    assert outcome.status_code is None
    assert outcome.error_message
    assert not (tmp_path / "slow").exists()


def test_body_write_failure_keeps_classification(tmp_path: Path):
    (tmp_path / "root").write_text("a file where the route directory should be", encoding="utf-8")

    outcome = with_server(tmp_path, probe_route("/"))

    assert outcome.outcome_kind is OutcomeKind.SUCCESS
    assert outcome.status_code == 200
    assert outcome.artifact_path is None
    assert outcome.error_message.startswith("could not save body:")


def test_asset_timeout_warning_names_the_error(tmp_path: Path, capsys):
    async def fn(prober):
        return await prober.verify_asset_mime_types()

    checks = {"/slow.js": "application/javascript"}
    assert with_server(tmp_path, fn, asset_checks=checks, http_timeout_s=0.2) is False

    line = next(line for line in capsys.readouterr().out.splitlines() if "/slow.js" in line)
    assert "WARN: /slow.js -> Error: " in line
    assert line.split("Error: ", 1)[1].strip()
