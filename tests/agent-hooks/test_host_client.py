"""Tests for HostClient against a fake host server."""

import asyncio

import pytest
import pytest_asyncio
from aiohttp import web
from aiohttp.test_utils import TestServer

from agent_hooks.errors import HostClientError
from agent_hooks.host_client import HostClient
from agent_hooks.models import Toast, ToastVariant


class FakeHost:
    """Records requests and serves canned todo lists."""

    def __init__(self) -> None:
        self.todos: dict[str, object] = {}
        self.prompts: list[dict] = []
        self.toasts: list[dict] = []
        self.fail_status: int = 0
        self.delay: float = 0.0
        self.app = web.Application()
        self.app.router.add_get("/session/{id}/todo", self._todo)
        self.app.router.add_post("/session/{id}/message", self._message)
        self.app.router.add_post("/tui/show-toast", self._toast)

    async def _todo(self, request: web.Request) -> web.Response:
        await asyncio.sleep(self.delay)
        if self.fail_status:
            return web.Response(status=self.fail_status, text="boom")
        return web.json_response(self.todos.get(request.match_info["id"], []))

    async def _message(self, request: web.Request) -> web.Response:
        await asyncio.sleep(self.delay)
        if self.fail_status:
            return web.Response(status=self.fail_status, text="boom")
        self.prompts.append({
            "session": request.match_info["id"],
            "directory": request.query.get("directory"),
            "body": await request.json(),
        })
        return web.json_response({"ok": True})

    async def _toast(self, request: web.Request) -> web.Response:
        self.toasts.append(await request.json())
        return web.json_response(True)


@pytest.fixture
def fake_host():
    return FakeHost()


@pytest_asyncio.fixture
async def host_client(fake_host):
    server = TestServer(fake_host.app)
    await server.start_server()
    client = HostClient(base_url=str(server.make_url("/")))
    await client.start()
    try:
        yield client
    finally:
        await client.stop()
        await server.close()


class TestSessionTodo:

    @pytest.mark.asyncio
    async def test_bare_list(self, host_client, fake_host):
        fake_host.todos["s1"] = [
            {"id": "1", "content": "write tests", "status": "pending", "priority": "high"},
            {"id": "2", "content": "ship", "status": "completed", "priority": "low"},
        ]

        todos = await host_client.session_todo("s1")

        assert [t.status for t in todos] == ["pending", "completed"]
        assert todos[0].is_incomplete
        assert not todos[1].is_incomplete

    @pytest.mark.asyncio
    async def test_data_envelope(self, host_client, fake_host):
        fake_host.todos["s1"] = {"data": [{"id": "1", "content": "x", "status": "in_progress", "priority": "medium"}]}

        todos = await host_client.session_todo("s1")

        assert len(todos) == 1
        assert todos[0].status == "in_progress"

    @pytest.mark.asyncio
    async def test_http_error_raises(self, host_client, fake_host):
        fake_host.fail_status = 500

        with pytest.raises(HostClientError) as exc_info:
            await host_client.session_todo("s1")

        assert exc_info.value.status == 500

    @pytest.mark.asyncio
    async def test_invalid_todo_raises(self, host_client, fake_host):
        fake_host.todos["s1"] = [{"id": "1"}]

        with pytest.raises(HostClientError):
            await host_client.session_todo("s1")


class TestPromptAndToast:

    @pytest.mark.asyncio
    async def test_prompt_sends_text_part_and_directory(self, host_client, fake_host):
        await host_client.session_prompt("s1", "keep going", "/work/app")

        assert fake_host.prompts == [{
            "session": "s1",
            "directory": "/work/app",
            "body": {"parts": [{"type": "text", "text": "keep going"}]},
        }]

    @pytest.mark.asyncio
    async def test_prompt_failure_raises(self, host_client, fake_host):
        fake_host.fail_status = 503

        with pytest.raises(HostClientError):
            await host_client.session_prompt("s1", "keep going")

    @pytest.mark.asyncio
    async def test_show_toast(self, host_client, fake_host):
        await host_client.show_toast(Toast(title="t", message="m", variant=ToastVariant.ERROR, duration=10000))

        assert fake_host.toasts == [{"title": "t", "message": "m", "variant": "error", "duration": 10000}]


@pytest.mark.asyncio
async def test_connection_refused_raises():
    client = HostClient(base_url="http://127.0.0.1:1", timeout_sec=2.0)
    try:
        with pytest.raises(HostClientError):
            await client.session_todo("s1")
    finally:
        await client.stop()


class TestTimeouts:

    @pytest_asyncio.fixture
    async def slow_client(self, fake_host):
        fake_host.delay = 0.5
        server = TestServer(fake_host.app)
        await server.start_server()
        client = HostClient(base_url=str(server.make_url("/")), timeout_sec=0.2)
        try:
            yield client
        finally:
            await client.stop()
            await server.close()

    @pytest.mark.asyncio
    async def test_slow_prompt_is_not_a_failure(self, slow_client, fake_host):
        await slow_client.session_prompt("s1", "keep going")

        assert len(fake_host.prompts) == 1

    @pytest.mark.asyncio
    async def test_slow_todo_fetch_times_out(self, slow_client):
        with pytest.raises(HostClientError):
            await slow_client.session_todo("s1")
