from uiabridge.protocol import ERROR_DETAILS_KEY, OperationRequest
from uiabridge.utils.exceptions import ErrorCategory


def test_invoke_by_alias_returns_success_payload(dispatcher):
    response = dispatcher.dispatch("Invoke", {"elementId": "OkButton"})
    assert response.to_payload() == {"success": True, "data": "Element invoked successfully", "error": None}


def test_unknown_operation_lists_supported_names(dispatcher):
    response = dispatcher.dispatch("Bogus", {})
    assert response.success is False
    assert response.data is None
    prefix = "Unknown operation: Bogus. Supported operations: "
    assert response.error.startswith(prefix)
    listed = response.error[len(prefix):].split(", ")
    assert listed == dispatcher.registry.names
    assert "FindElements" in listed
    assert response.category is ErrorCategory.UNKNOWN_OPERATION


def test_names_are_case_insensitive(dispatcher):
    for name in ("getdesktopwindows", "GETDESKTOPWINDOWS", "GetDesktopWindows", "ListWindows"):
        response = dispatcher.dispatch(name)
        assert response.success, name
        titles = [w["title"] for w in response.data["windows"]]
        assert titles == ["Sample App", "Fault Lab"]


def test_missing_required_field_is_reported_by_wire_name(dispatcher):
    response = dispatcher.dispatch("InvokeElement", {})
    assert response.success is False
    assert response.error == "elementId is required for InvokeElement"
    assert response.category is ErrorCategory.VALIDATION

    blank = dispatcher.dispatch("InvokeElement", {"elementId": "   "})
    assert blank.error == "elementId is required for InvokeElement"


def test_invalid_field_type_is_a_validation_failure(dispatcher):
    response = dispatcher.dispatch("SetRangeValue", {"elementId": "Volume", "value": "loud"})
    assert response.success is False
    assert response.error.startswith("Invalid value for SetRangeValue:")


def test_extra_parameters_are_ignored(dispatcher):
    response = dispatcher.dispatch("Invoke", {"elementId": "OkButton", "extra": 1, "Unused": "x"})
    assert response.success


def test_backend_errors_keep_their_category(dispatcher):
    missing = dispatcher.dispatch("Invoke", {"elementId": "NoSuchThing"})
    assert missing.success is False
    assert "Element not found" in missing.error
    assert missing.category is ErrorCategory.NOT_FOUND

    denied = dispatcher.dispatch("Invoke", {"elementId": "DeniedButton"})
    assert denied.category is ErrorCategory.PERMISSION

    unsupported = dispatcher.dispatch("Toggle", {"elementId": "OkButton"})
    assert unsupported.category is ErrorCategory.NOT_SUPPORTED

    disabled = dispatcher.dispatch("Invoke", {"elementId": "DisabledButton"})
    assert disabled.category is ErrorCategory.INVALID_OPERATION


def test_unexpected_exception_becomes_internal_failure(dispatcher):
    response = dispatcher.dispatch("Invoke", {"elementId": "ErrorButton"})
    assert response.success is False
    assert response.error.startswith("RuntimeError: simulated backend failure")
    payload = response.to_payload()
    details = payload[ERROR_DETAILS_KEY]
    assert details["category"] == "internal"
    assert details["code"] == "INTERNAL_ERROR"
    assert details["exceptionType"] == "RuntimeError"
    assert "Traceback" in details["stackTrace"]

    # the worker keeps serving after an unhandled exception
    assert dispatcher.dispatch("Ping").success


def test_dispatch_request_and_ping_counts_operations(dispatcher):
    dispatcher.dispatch("Bogus")
    dispatcher.dispatch_request(OperationRequest("Invoke", {"elementId": "OkButton"}))
    response = dispatcher.dispatch("health")
    assert response.success
    assert response.data["pong"] is True
    assert response.data["backend"] == "memory"
    assert response.data["operationCount"] == 1
    assert dispatcher.dispatch("Ping").data["operationCount"] == 2


def test_supported_operations_matches_registry(dispatcher):
    response = dispatcher.dispatch("GetSupportedOperations")
    assert response.success
    names = [op["name"] for op in response.data["operations"]]
    assert names == dispatcher.registry.names
    assert response.data["count"] == len(names)
    invoke = next(op for op in response.data["operations"] if op["name"] == "InvokeElement")
    assert "Invoke" in invoke["aliases"]


def test_non_dict_parameters_are_treated_as_empty(dispatcher):
    response = dispatcher.dispatch("Ping", None)
    assert response.success
    response = dispatcher.dispatch("Invoke", ["OkButton"])  # type: ignore[arg-type]
    assert response.error == "elementId is required for InvokeElement"
