import io
import json

import pytest

from uiabridge.worker.loop import EXIT_BROKEN_INPUT, EXIT_BROKEN_OUTPUT, EXIT_OK, WorkerLoop, WorkerState


def _run(dispatcher, data: bytes, **kwargs):
    out = io.BytesIO()
    loop = WorkerLoop(dispatcher, io.BytesIO(data), out, **kwargs)
    code = loop.run()
    lines = [json.loads(line) for line in out.getvalue().decode("utf-8").splitlines()]
    return code, lines, loop


def test_one_response_per_request_in_order(dispatcher):
    data = b"".join(
        [
            b'{"operation": "Ping"}\n',
            b'{"operation": "Invoke", "parameters": {"elementId": "OkButton"}}\n',
            b'{"operation": "Bogus", "parameters": {}}\n',
        ]
    )
    code, lines, loop = _run(dispatcher, data)
    assert code == EXIT_OK
    assert len(lines) == 3
    assert lines[0]["success"] is True and lines[0]["data"]["pong"] is True
    assert lines[1] == {"success": True, "data": "Element invoked successfully", "error": None}
    assert lines[2]["success"] is False
    assert lines[2]["error"].startswith("Unknown operation: Bogus.")
    assert loop.handled == 3
    assert loop.state is WorkerState.SHUTDOWN


def test_blank_lines_produce_no_response(dispatcher):
    data = b'\n   \r\n{"operation": "Ping"}\n\n'
    code, lines, _ = _run(dispatcher, data)
    assert code == EXIT_OK
    assert len(lines) == 1


def test_malformed_lines_answered_and_loop_continues(dispatcher):
    data = b'{oops\n[1,2]\n{"parameters": {}}\n\xff\xfe\n{"operation": "Ping"}\n'
    code, lines, _ = _run(dispatcher, data)
    assert code == EXIT_OK
    assert len(lines) == 5
    assert all(line["success"] is False for line in lines[:4])
    assert lines[0]["error"].startswith("Invalid JSON")
    assert lines[1]["error"] == "Request must be a JSON object"
    assert lines[2]["error"] == "Missing operation property"
    assert "UTF-8" in lines[3]["error"]
    assert lines[0]["errorDetails"]["category"] == "protocol"
    assert lines[4]["success"] is True


def test_utf8_bom_and_crlf_are_tolerated(dispatcher):
    data = ("\ufeff" + '{"operation": "SetValue", "parameters": {"elementId": "NameBox", "value": "Zo\u00eb"}}\r\n').encode("utf-8")
    data += b'{"operation": "GetValue", "parameters": {"elementId": "NameBox"}}\r\n'
    _, lines, _ = _run(dispatcher, data)
    assert lines[0]["success"] is True
    assert lines[1]["data"]["value"] == "Zoë"


def test_last_line_without_newline_is_served(dispatcher):
    _, lines, _ = _run(dispatcher, b'{"operation": "Ping"}')
    assert len(lines) == 1 and lines[0]["success"]


def test_oversized_line_rejected_and_following_line_served(dispatcher):
    big = json.dumps({"operation": "Ping", "parameters": {"pad": "x" * 500}}).encode("utf-8")
    data = big + b'\n{"operation": "Ping"}\n'
    code, lines, _ = _run(dispatcher, data, max_line_bytes=64)
    assert code == EXIT_OK
    assert len(lines) == 2
    assert lines[0]["success"] is False
    assert lines[0]["error"] == "Request line exceeds 64 bytes"
    assert lines[1]["success"] is True


def test_empty_input_exits_cleanly(dispatcher):
    code, lines, loop = _run(dispatcher, b"")
    assert code == EXIT_OK
    assert lines == []
    assert loop.handled == 0


class _BrokenInput(io.RawIOBase):
    def readable(self):
        return True

    def readline(self, size=-1):
        raise OSError("stdin handle is invalid")


def test_unreadable_input_exits_with_distinct_code(dispatcher):
    output = io.BytesIO()
    loop = WorkerLoop(dispatcher, _BrokenInput(), output)
    assert loop.run() == EXIT_BROKEN_INPUT
    assert EXIT_BROKEN_INPUT not in (EXIT_OK, EXIT_BROKEN_OUTPUT)
    assert output.getvalue() == b""


class _BrokenOutput(io.RawIOBase):
    def writable(self):
        return True

    def write(self, b):
        raise BrokenPipeError("host went away")


def test_broken_output_exits_with_distinct_code(dispatcher):
    loop = WorkerLoop(dispatcher, io.BytesIO(b'{"operation": "Ping"}\n{"operation": "Ping"}\n'), _BrokenOutput())
    assert loop.run() == EXIT_BROKEN_OUTPUT
    assert loop.handled == 0


def test_handle_line_accepts_text(dispatcher):
    loop = WorkerLoop(dispatcher, io.BytesIO(), io.BytesIO())
    assert loop.handle_line("   ") is None
    response = loop.handle_line('{"operation": "ping"}')
    assert response.success


def test_max_line_bytes_must_be_positive(dispatcher):
    with pytest.raises(ValueError):
        WorkerLoop(dispatcher, io.BytesIO(), io.BytesIO(), max_line_bytes=0)
