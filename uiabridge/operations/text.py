"""Text pattern operations."""

from __future__ import annotations

from typing import Any

from pydantic import Field

from uiabridge.operations.base import ElementParams, PatternOperation, RequiredText


class GetTextParams(ElementParams):
    max_length: int = Field(default=-1, ge=-1)


class GetText(PatternOperation):
    name = "GetText"
    description = "Read the document text of an element"
    Params = GetTextParams
    pattern = "text"
    action = "get_text"

    def arguments(self, params: GetTextParams) -> dict[str, Any]:
        return {"max_length": params.max_length}


class TextParams(ElementParams):
    text: str


class SetText(PatternOperation):
    name = "SetText"
    description = "Replace the text of an editable element"
    Params = TextParams
    pattern = "text"
    action = "set_text"
    message = "Text set successfully"

    def arguments(self, params: TextParams) -> dict[str, Any]:
        return {"text": params.text}


class AppendText(PatternOperation):
    name = "AppendText"
    description = "Append to the text of an editable element"
    Params = TextParams
    pattern = "text"
    action = "append"

    def arguments(self, params: TextParams) -> dict[str, Any]:
        return {"text": params.text}


class SelectTextParams(ElementParams):
    start_index: int
    length: int


class SelectText(PatternOperation):
    name = "SelectText"
    description = "Select a character range inside an element's text"
    Params = SelectTextParams
    pattern = "text"
    action = "select"

    def arguments(self, params: SelectTextParams) -> dict[str, Any]:
        return {"start": params.start_index, "length": params.length}


class FindTextParams(ElementParams):
    search_text: RequiredText
    backward: bool = False
    ignore_case: bool = True


class FindText(PatternOperation):
    name = "FindText"
    description = "Find a substring in an element's text"
    Params = FindTextParams
    pattern = "text"
    action = "find"

    def arguments(self, params: FindTextParams) -> dict[str, Any]:
        return {"text": params.search_text, "backward": params.backward, "ignore_case": params.ignore_case}


class GetTextSelection(PatternOperation):
    name = "GetTextSelection"
    description = "Currently selected text ranges"
    pattern = "text"
    action = "get_selection"
