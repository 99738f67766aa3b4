"""Tests for the protocol dispatcher."""

import json

import pytest
from lobehub_protocol import DispatchState
from lobehub_protocol import InstallRequest
from lobehub_protocol import InstallRequestEvent
from lobehub_protocol import PluginSchema
from lobehub_protocol import ProtocolDispatcher
from lobehub_protocol import ProtocolSource
from lobehub_protocol import generate_rfc_protocol_url


class MockWorkflow:
    """Mock installation workflow recording delivered events."""

    def __init__(self, accept: bool = True, error: Exception | None = None):
        self.accept = accept
        self.error = error
        self.events: list[InstallRequestEvent] = []

    async def request_install(self, event: InstallRequestEvent) -> bool:
        self.events.append(event)
        if self.error is not None:
            raise self.error
        return self.accept


def make_schema(identifier: str = "edgeone-mcp") -> PluginSchema:
    return PluginSchema.model_validate(
        {
            "identifier": identifier,
            "name": "EdgeOne MCP",
            "author": "Higress Team",
            "description": "EdgeOne API integration",
            "version": "1.0.0",
            "config": {"type": "stdio", "command": "npx", "args": ["-y", "@higress/edgeone-mcp"]},
        }
    )


def make_url(**kwargs) -> str:
    return generate_rfc_protocol_url(InstallRequest(id="edgeone-mcp", schema=make_schema(), **kwargs))


@pytest.mark.asyncio
async def test_dispatch_delivers_event():
    """Test a valid link is delivered with its decoded payload."""
    workflow = MockWorkflow()
    dispatcher = ProtocolDispatcher(workflow=workflow)
    url = make_url(market_id="higress", meta_params={"category": "api"})

    result = await dispatcher.dispatch(url)

    assert result.success
    assert result.state == DispatchState.DELIVERED
    assert result.reason is None
    assert len(workflow.events) == 1
    event = workflow.events[0]
    assert result.event == event
    assert event.type == "install-request"
    assert event.plugin_id == "edgeone-mcp"
    assert event.schema == make_schema()
    assert event.market_id == "higress"
    assert event.meta_params == {"category": "api"}
    assert event.source_url == url


@pytest.mark.asyncio
async def test_dispatch_unparseable():
    workflow = MockWorkflow()
    dispatcher = ProtocolDispatcher(workflow=workflow)

    result = await dispatcher.dispatch("lobehub://plugin/install?type=mcp")

    assert not result.success
    assert result.state == DispatchState.REJECTED
    assert result.reason == "unparseable"
    assert workflow.events == []


@pytest.mark.asyncio
async def test_dispatch_rejects_other_actions():
    """Test an install-only dispatcher rejects update links even though they decode."""
    workflow = MockWorkflow()
    dispatcher = ProtocolDispatcher(workflow=workflow)
    url = make_url().replace("://plugin/install?", "://plugin/update?")

    result = await dispatcher.dispatch(url)

    assert result.state == DispatchState.REJECTED
    assert result.reason is not None
    assert result.reason.startswith("route mismatch")
    assert workflow.events == []


@pytest.mark.asyncio
async def test_dispatch_rejects_other_url_type():
    """Test a plugin dispatcher does not take legacy mcp/install links."""
    workflow = MockWorkflow()
    dispatcher = ProtocolDispatcher(workflow=workflow)

    result = await dispatcher.dispatch("lobehub://mcp/install?identifier=figma")

    assert result.state == DispatchState.REJECTED
    assert workflow.events == []


@pytest.mark.asyncio
async def test_legacy_dispatcher():
    """Test a dispatcher registered for mcp/install delivers legacy links."""
    workflow = MockWorkflow()
    dispatcher = ProtocolDispatcher(workflow=workflow, url_type="mcp")

    result = await dispatcher.dispatch("lobehub://mcp/install?identifier=figma&source=third_party&version=1.0.0")

    assert result.success
    event = workflow.events[0]
    assert event.plugin_id == "figma"
    assert event.schema is None
    assert event.params is not None
    assert event.params.version == "1.0.0"
    assert event.source == ProtocolSource.THIRD_PARTY
    assert event.requires_confirmation is True


@pytest.mark.asyncio
async def test_dispatch_workflow_declines():
    dispatcher = ProtocolDispatcher(workflow=MockWorkflow(accept=False))

    result = await dispatcher.dispatch(make_url())

    assert result.state == DispatchState.REJECTED
    assert result.reason == "delivery failed"


@pytest.mark.asyncio
async def test_dispatch_workflow_raises():
    """Test a workflow error becomes a rejection, not an exception."""
    dispatcher = ProtocolDispatcher(workflow=MockWorkflow(error=RuntimeError("window closed")))

    result = await dispatcher.dispatch(make_url())

    assert result.state == DispatchState.REJECTED
    assert result.reason == "delivery failed"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "source,requires_confirmation",
    [
        (ProtocolSource.OFFICIAL, False),
        (ProtocolSource.COMMUNITY, False),
        (ProtocolSource.THIRD_PARTY, True),
        (None, True),
    ],
)
async def test_dispatch_flags_untrusted_sources(source, requires_confirmation):
    workflow = MockWorkflow()
    dispatcher = ProtocolDispatcher(workflow=workflow)

    await dispatcher.dispatch(make_url(source=source))

    assert workflow.events[0].requires_confirmation is requires_confirmation


@pytest.mark.asyncio
async def test_dispatch_is_repeatable():
    """Test the same dispatcher handles the same link repeatedly with identical results."""
    workflow = MockWorkflow()
    dispatcher = ProtocolDispatcher(workflow=workflow)
    url = make_url()

    first = await dispatcher.dispatch(url)
    second = await dispatcher.dispatch(url)

    assert first == second
    assert len(workflow.events) == 2


def test_dispatcher_route():
    dispatcher = ProtocolDispatcher(workflow=MockWorkflow(), url_type="mcp", action="install")

    assert dispatcher.route == ("mcp", "install")


def test_event_payload():
    """Test event message shape for the process boundary."""
    url = make_url(market_id="higress")
    event = InstallRequestEvent(
        plugin_id="edgeone-mcp",
        source_url=url,
        schema=make_schema(),
        market_id="higress",
        source=ProtocolSource.OFFICIAL,
        requires_confirmation=False,
    )

    payload = event.to_payload()

    assert payload["type"] == "install-request"
    assert payload["data"] == {
        "pluginId": "edgeone-mcp",
        "schema": make_schema().to_wire(),
        "params": None,
        "marketId": "higress",
        "metaParams": None,
        "source": "official",
        "sourceUrl": url,
        "requiresConfirmation": False,
    }
    json.dumps(payload)
