import pytest
from pydantic import ValidationError

from uiabridge.client import requests as typed
from uiabridge.client.defaults import apply_configuration_defaults
from uiabridge.client.executor import TypedExecutor
from uiabridge.client.results import (
    AvailableViewsResult,
    ControlTypeInfoResult,
    DesktopWindowsResult,
    FindElementsResult,
    LegacyPropertiesResult,
    PingResult,
    RangeValueResult,
    StateResult,
    SupportedOperationsResult,
    TextResult,
)
from uiabridge.config.schema import OperationDefaults
from uiabridge.operations import ALL_OPERATIONS
from uiabridge.protocol import OperationRequest, OperationResponse
from uiabridge.utils.exceptions import ErrorCategory


class _Recorder:
    def __init__(self, response=None):
        self.calls = []
        self.response = response or OperationResponse.ok(None)

    def execute(self, request, timeout_seconds=None):
        self.calls.append((request, timeout_seconds))
        return self.response


class _InProcess:
    """Envelope executor that dispatches in-process."""

    def __init__(self, dispatcher):
        self.dispatcher = dispatcher

    def execute(self, request, timeout_seconds=None):
        return self.dispatcher.dispatch_request(request)


def test_envelope_uses_wire_names_and_omits_unset_fields():
    envelope = typed.FindElementsRequest(search_text="OK", control_type="Button").to_envelope()
    assert envelope.operation == "FindElements"
    assert envelope.parameters == {"searchText": "OK", "controlType": "Button"}

    envelope = typed.SetElementValueRequest(element_id="NameBox", value="x").to_envelope()
    assert envelope.parameters == {"elementId": "NameBox", "value": "x"}


def test_required_fields_are_enforced():
    with pytest.raises(ValidationError):
        typed.InvokeElementRequest()
    with pytest.raises(ValidationError):
        typed.SetTextRequest(element_id="Notes")
    with pytest.raises(ValidationError):
        typed.GetGridItemRequest(element_id="Scores", row=-1, column=0)


def test_populate_by_alias_or_name():
    by_alias = typed.SelectTextRequest.model_validate({"elementId": "Notes", "startIndex": 1, "length": 2})
    by_name = typed.SelectTextRequest(element_id="Notes", start_index=1, length=2)
    assert by_alias == by_name


def test_defaults_fill_only_unset_fields():
    defaults = OperationDefaults()
    defaults.element_search.max_results = 7
    request = typed.FindElementsRequest(search_text="a", use_regex=True)
    prepared = apply_configuration_defaults(request, defaults)
    assert prepared is not request
    assert prepared.max_results == 7
    assert prepared.scope == "descendants"
    assert prepared.use_regex is True
    assert prepared.use_wildcard is False
    assert prepared.timeout_seconds == 30
    assert request.max_results is None

    explicit_none = typed.FindElementsRequest(max_results=None)
    assert apply_configuration_defaults(explicit_none, defaults).max_results is None


def test_defaults_noop_returns_same_object():
    request = typed.InvokeElementRequest(element_id="OkButton")
    assert apply_configuration_defaults(request, OperationDefaults()) is request
    ping = typed.PingRequest()
    assert apply_configuration_defaults(ping, None) is ping


def test_deadlines_follow_request_timeouts():
    assert typed.PingRequest().deadline_seconds() is None
    assert typed.FindElementsRequest(timeout_seconds=10).deadline_seconds() == 10 + typed.DEADLINE_GRACE_SECONDS
    wait = typed.WaitForWindowStateRequest(window_title="App", window_state="Normal", timeout_seconds=3)
    assert wait.deadline_seconds() == 3 + typed.DEADLINE_GRACE_SECONDS
    idle = typed.WaitForInputIdleRequest(window_title="App", timeout_milliseconds=2000)
    assert idle.deadline_seconds() == 2 + typed.DEADLINE_GRACE_SECONDS


def test_executor_applies_defaults_and_deadline():
    recorder = _Recorder()
    executor = TypedExecutor(recorder, OperationDefaults())
    executor.execute(typed.FindElementsRequest(search_text="OK"))
    envelope, timeout = recorder.calls[-1]
    assert envelope.parameters["scope"] == "descendants"
    assert envelope.parameters["maxResults"] == 100
    assert timeout == 30 + typed.DEADLINE_GRACE_SECONDS

    executor.execute(typed.FindElementsRequest(search_text="OK"), timeout_seconds=2)
    assert recorder.calls[-1][1] == 2

    executor.execute(typed.WindowActionRequest(window_title="App"))
    envelope, timeout = recorder.calls[-1]
    assert envelope.parameters == {"windowTitle": "App", "action": "setfocus"}
    assert timeout is None


def test_request_type_lookup_covers_names_and_aliases():
    assert typed.request_type_for("invoke") is typed.InvokeElementRequest
    assert typed.request_type_for("InvokeElement") is typed.InvokeElementRequest
    assert typed.request_type_for(" SETVALUE ") is typed.SetElementValueRequest
    assert typed.request_type_for("health") is typed.PingRequest
    assert typed.request_type_for("bogus") is None


def test_every_operation_has_a_typed_request():
    assert len(typed.REQUEST_TYPES) == len(ALL_OPERATIONS)
    for operation in ALL_OPERATIONS:
        assert typed.request_type_for(operation.name).operation == operation.name


def test_typed_request_from_envelope():
    request = typed.typed_request_from_envelope(OperationRequest("Invoke", {"elementId": "OkButton", "junk": 1}))
    assert isinstance(request, typed.InvokeElementRequest)
    assert request.element_id == "OkButton"

    with pytest.raises(ValueError):
        typed.typed_request_from_envelope(OperationRequest("Bogus", {}))
    with pytest.raises(ValueError):
        typed.InvokeElementRequest.from_envelope(OperationRequest("Ping", {}))


def test_describe_request():
    description = typed.describe_request(typed.SetElementValueRequest)
    assert description["operation"] == "SetElementValue"
    assert description["fields"]["elementId"] == {"required": True}
    assert description["fields"]["windowTitle"] == {"required": False}


def test_typed_requests_run_against_worker_dispatch(dispatcher):
    executor = TypedExecutor(_InProcess(dispatcher), OperationDefaults())

    found = executor.execute_typed(typed.FindElementsRequest(control_type="ListItem"), FindElementsResult)
    assert found.success
    assert found.data.count == 5
    assert found.data.elements[0].automation_id == "Apple"

    windows = executor.execute_typed(typed.GetDesktopWindowsRequest(), DesktopWindowsResult)
    assert [w.title for w in windows.data.windows] == ["Sample App", "Fault Lab"]

    text = executor.execute_typed(typed.GetTextRequest(element_id="Notes", max_length=5), TextResult)
    assert text.data.text == "Hello"

    moved = executor.execute(typed.MoveElementRequest(element_id="MainWindow"))
    assert moved.data["boundingRectangle"]["x"] == 0

    ping = executor.execute_typed(typed.PingRequest(), PingResult)
    assert ping.data.pong is True
    assert ping.data.backend == "memory"


def test_pattern_results_validate(dispatcher):
    executor = TypedExecutor(_InProcess(dispatcher), OperationDefaults())

    volume = executor.execute_typed(typed.GetRangeValueRequest(element_id="Volume"), RangeValueResult)
    assert (volume.data.value, volume.data.minimum, volume.data.maximum) == (30, 0, 100)

    executor.execute(typed.ToggleElementRequest(element_id="DarkMode"))
    state = executor.execute_typed(typed.GetToggleStateRequest(element_id="DarkMode"), StateResult)
    assert state.data.state == "On"

    listing = executor.execute_typed(typed.GetSupportedOperationsRequest(), SupportedOperationsResult)
    assert listing.data.count == len(ALL_OPERATIONS)
    assert "InvokeElement" in {op.name for op in listing.data.operations}


def test_view_and_legacy_results_validate(dispatcher):
    executor = TypedExecutor(_InProcess(dispatcher), OperationDefaults())

    views = executor.execute_typed(typed.GetAvailableViewsRequest(element_id="Files"), AvailableViewsResult)
    assert [(v.view_id, v.name) for v in views.data.views] == [(0, "Details"), (1, "Icons"), (2, "List")]

    legacy = executor.execute_typed(typed.GetLegacyPropertiesRequest(element_id="HelpLink"), LegacyPropertiesResult)
    assert legacy.data.default_action == "Jump"
    assert legacy.data.state_flags == ["Focusable", "Linked"]

    request = typed.GetControlTypeInfoRequest(element_id="Volume", include_default_properties=True)
    assert request.to_envelope().parameters == {"elementId": "Volume", "includeDefaultProperties": True}
    info = executor.execute_typed(request, ControlTypeInfoResult)
    assert info.data.control_type == "Slider"
    assert info.data.pattern_validation.has_all_required_patterns is True
    assert info.data.default_properties["isVisible"] is True

    with pytest.raises(ValidationError):
        typed.SelectLegacyItemRequest(element_id="HelpLink", flags_select=0x40)


def test_execute_typed_passes_failures_and_flags_mismatches():
    failing = TypedExecutor(_Recorder(OperationResponse.fail("nope", category=ErrorCategory.NOT_FOUND)))
    response = failing.execute_typed(typed.PingRequest(), PingResult)
    assert response.error == "nope"

    mismatched = TypedExecutor(_Recorder(OperationResponse.ok({"unexpected": True})))
    response = mismatched.execute_typed(typed.PingRequest(), PingResult)
    assert response.success is False
    assert response.category is ErrorCategory.PROTOCOL
    assert response.details["code"] == "RESULT_MISMATCH"


@pytest.mark.asyncio
async def test_execute_async():
    recorder = _Recorder(OperationResponse.ok("done"))
    response = await TypedExecutor(recorder).execute_async(typed.InvokeElementRequest(element_id="OkButton"))
    assert response.data == "done"
    assert recorder.calls[0][0].operation == "InvokeElement"
