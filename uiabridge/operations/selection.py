"""Selection and selection-item operations."""

from uiabridge.operations.base import PatternOperation


class SelectElement(PatternOperation):
    name = "SelectElement"
    aliases = ("select", "SelectItem")
    description = "Select an item, deselecting siblings in single-select containers"
    pattern = "selection_item"
    action = "select"
    message = "Element selected successfully"


class AddToSelection(PatternOperation):
    name = "AddToSelection"
    description = "Add an item to the current selection"
    pattern = "selection_item"
    action = "add"
    message = "Element added to selection"


class RemoveFromSelection(PatternOperation):
    name = "RemoveFromSelection"
    description = "Remove an item from the current selection"
    pattern = "selection_item"
    action = "remove"
    message = "Element removed from selection"


class IsSelected(PatternOperation):
    name = "IsSelected"
    description = "Whether an item is selected"
    pattern = "selection_item"
    action = "is_selected"


class GetSelection(PatternOperation):
    name = "GetSelection"
    description = "Selected items of a selection container"
    pattern = "selection"
    action = "get_selection"


class ClearSelection(PatternOperation):
    name = "ClearSelection"
    description = "Deselect every item in a selection container"
    pattern = "selection"
    action = "clear"
    message = "Selection cleared"
