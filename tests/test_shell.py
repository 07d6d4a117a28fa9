import json

import httpx
import pytest
from fastapi.testclient import TestClient

from jdoptimizer.config import Settings
from jdoptimizer.main import create_app
from jdoptimizer.shell import (
    BUSY_MESSAGE,
    EMPTY_INPUT_MESSAGE,
    INVALID_CODE_MESSAGE,
    QUOTA_MESSAGE,
    HttpRelay,
    LocalRelay,
    OptimizerShell,
    RelayError,
)
from jdoptimizer.usage import PACK_SIZE, Tier

from .conftest import status_error


@pytest.fixture
def shell(fake_relay):
    return OptimizerShell(fake_relay, {})


def test_successful_submit_shows_output(shell, fake_relay):
    shell.set_input("Backend engineer")
    state = shell.submit()

    assert fake_relay.calls == ["Backend engineer"]
    assert state.output_text == "Optimized job description"
    assert state.error == ""
    assert state.loading is False
    assert state.usage.free_used == 1


@pytest.mark.parametrize("text", ["", "   ", "\n\t"])
def test_empty_input_is_rejected_locally(shell, fake_relay, text):
    shell.set_input(text)
    state = shell.submit()

    assert state.error == EMPTY_INPUT_MESSAGE
    assert fake_relay.calls == []


def test_third_free_submission_is_blocked_without_network():
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(200, json={"optimized": "better"})

    relay = HttpRelay("http://relay.test/api/optimize", client=httpx.Client(transport=httpx.MockTransport(handler)))
    shell = OptimizerShell(relay, {})
    shell.set_input("Warehouse associate")

    shell.submit()
    shell.submit()
    state = shell.submit()

    assert len(calls) == 2
    assert state.error == QUOTA_MESSAGE
    assert state.show_upsell is True
    assert state.output_text == "better"


def test_failure_keeps_previous_output(shell, fake_relay):
    shell.set_input("first")
    shell.submit()

    fake_relay.error = "Invalid API Key"
    shell.set_input("second")
    state = shell.submit()

    assert state.output_text == "Optimized job description"
    assert state.error == "Error: Invalid API Key"
    assert state.usage.free_used == 1
    assert state.loading is False


def test_loading_is_set_while_relay_runs(shell, fake_relay):
    seen = []
    fake_relay.on_call = lambda: seen.append(shell.state.loading)

    shell.set_input("Nurse")
    shell.submit()

    assert seen == [True]
    assert shell.state.loading is False


def test_second_submit_while_in_flight_is_refused(shell, fake_relay):
    nested = []
    fake_relay.on_call = lambda: nested.append(shell.submit())

    shell.set_input("Chef")
    state = shell.submit()

    assert len(fake_relay.calls) == 1
    assert nested[0].error == BUSY_MESSAGE
    assert state.error == ""
    assert state.usage.free_used == 1


def test_pack_code_unlocks_ten_more(shell, fake_relay):
    shell.set_input("Pilot")
    shell.submit()
    shell.submit()
    assert shell.quota_exhausted

    state = shell.activate("jdo10-Q7Z")

    assert state.usage.tier is Tier.FIXED_PACK
    assert state.usage.pack_remaining == PACK_SIZE
    assert state.usage.free_used == 0
    assert state.show_upsell is False

    shell.submit()
    assert shell.state.usage.pack_remaining == PACK_SIZE - 1


def test_unlimited_code_never_blocks(shell, fake_relay):
    shell.activate("JDOUNL-forever")
    shell.set_input("Teacher")

    for _ in range(25):
        assert shell.submit().error == ""

    assert len(fake_relay.calls) == 25
    assert shell.remaining is None


def test_invalid_code_leaves_usage_alone(shell):
    before = shell.state.usage
    state = shell.activate("FREE-STUFF")

    assert state.error == INVALID_CODE_MESSAGE
    assert state.usage == before


def test_usage_survives_a_new_shell_on_the_same_storage(fake_relay):
    storage = {}
    first = OptimizerShell(fake_relay, storage)
    first.activate("JDO10-abc")
    first.set_input("Cashier")
    first.submit()

    second = OptimizerShell(fake_relay, storage)

    assert second.state.usage == first.state.usage
    assert second.state.usage.pack_remaining == PACK_SIZE - 1


# -------- relay clients --------

def _relay(handler):
    return HttpRelay("http://relay.test/api/optimize", client=httpx.Client(transport=httpx.MockTransport(handler)))


def test_http_relay_posts_job_description():
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(200, json={"optimized": "done"})

    assert _relay(handler).optimize("Plumber") == "done"
    assert seen[0].method == "POST"
    assert json.loads(seen[0].content) == {"jobDescription": "Plumber"}


def test_http_relay_surfaces_error_field():
    relay = _relay(lambda request: httpx.Response(500, json={"error": "Groq API request failed"}))

    with pytest.raises(RelayError, match="Groq API request failed"):
        relay.optimize("x")


def test_http_relay_non_json_error():
    relay = _relay(lambda request: httpx.Response(502, text="<html>bad gateway</html>"))

    with pytest.raises(RelayError, match="Optimization failed"):
        relay.optimize("x")


def test_http_relay_connection_error():
    def handler(request):
        raise httpx.ConnectError("refused", request=request)

    with pytest.raises(RelayError, match="Could not reach"):
        _relay(handler).optimize("x")


def test_http_relay_against_the_app(fake_llm):
    fake_llm.reply = "Rewritten"
    relay = HttpRelay("/api/optimize", client=TestClient(create_app(Settings())))

    assert relay.optimize("Electrician") == "Rewritten"


def test_shell_over_http_shows_upstream_error(fake_llm):
    relay = HttpRelay("/api/optimize", client=TestClient(create_app(Settings())))
    shell = OptimizerShell(relay, {})
    shell.set_input("Electrician")
    shell.submit()

    fake_llm.error = status_error(429, {"message": "Rate limit reached"})
    state = shell.submit()

    assert state.error == "Error: Rate limit reached"
    assert state.output_text == "Optimized job description"


def test_local_relay_maps_errors(fake_llm):
    fake_llm.error = status_error(401, {"message": "Invalid API Key"})

    with pytest.raises(RelayError, match="Invalid API Key"):
        LocalRelay(Settings()).optimize("Welder")


def test_local_relay_hides_unexpected_errors(fake_llm):
    fake_llm.error = ValueError("internal detail")

    with pytest.raises(RelayError, match="Failed to optimize job description"):
        LocalRelay(Settings()).optimize("Welder")


def test_quota_is_checked_under_the_in_flight_lock(fake_relay):
    shell = OptimizerShell(fake_relay, {"jdo.free_used": "1"})
    nested = []
    fake_relay.on_call = lambda: nested.append(shell.submit())

    shell.set_input("Barista")
    shell.submit()

    assert nested[0].error == BUSY_MESSAGE
    assert shell.state.usage.free_used == 2
    assert len(fake_relay.calls) == 1


def test_blocked_submit_releases_the_lock(shell, fake_relay):
    shell.set_input("Barista")
    shell.submit()
    shell.submit()

    assert shell.submit().error == QUOTA_MESSAGE

    shell.activate("JDO10-refill")
    state = shell.submit()

    assert state.error == ""
    assert len(fake_relay.calls) == 3
