"""
白板助手可用的工具声明（JSON Schema格式）
"""
from typing import Any, Dict, List

from ..constants import ActionType

CREATE_NOTES_TOOL: Dict[str, Any] = {
    "name": ActionType.CREATE_NOTES.value,
    "description": "Create sticky notes or text cards on the whiteboard to organize thoughts or break down tasks.",
    "parameters": {
        "type": "object",
        "properties": {
            "notes": {
                "type": "array",
                "description": "List of notes to create",
                "items": {
                    "type": "object",
                    "properties": {
                        "title": {"type": "string", "description": "Title of the note (optional)"},
                        "content": {"type": "string", "description": "The body text of the note"},
                        "color": {"type": "string", "description": "Color hex code (e.g. #fef3c7 for yellow, #dbeafe for blue)"},
                        "x": {"type": "number", "description": "X coordinate to place the note (optional)"},
                        "y": {"type": "number", "description": "Y coordinate to place the note (optional)"},
                    },
                    "required": ["content"],
                },
            }
        },
        "required": ["notes"],
    },
}

ORGANIZE_LAYOUT_TOOL: Dict[str, Any] = {
    "name": ActionType.ORGANIZE_LAYOUT.value,
    "description": "Move existing nodes on the whiteboard to new coordinates. Use this to cluster related items, stack cards, tidy up the board, or organize ideas spatially.",
    "parameters": {
        "type": "object",
        "properties": {
            "moves": {
                "type": "array",
                "description": "List of nodes to move",
                "items": {
                    "type": "object",
                    "properties": {
                        "id": {"type": "string", "description": "The ID of the node to move"},
                        "x": {"type": "number", "description": "New X coordinate"},
                        "y": {"type": "number", "description": "New Y coordinate"},
                    },
                    "required": ["id", "x", "y"],
                },
            }
        },
        "required": ["moves"],
    },
}

CONNECT_NODES_TOOL: Dict[str, Any] = {
    "name": ActionType.CONNECT_NODES.value,
    "description": "Create connection lines between existing nodes to show relationships, workflows, flow, or hierarchy.",
    "parameters": {
        "type": "object",
        "properties": {
            "connections": {
                "type": "array",
                "description": "List of connections to create",
                "items": {
                    "type": "object",
                    "properties": {
                        "fromId": {"type": "string", "description": "ID of the source node"},
                        "toId": {"type": "string", "description": "ID of the target node"},
                        "label": {"type": "string", "description": "Short label for the connection (optional)"},
                    },
                    "required": ["fromId", "toId"],
                },
            }
        },
        "required": ["connections"],
    },
}

DELETE_NODES_TOOL: Dict[str, Any] = {
    "name": ActionType.DELETE_NODES.value,
    "description": "Remove nodes from the whiteboard. Use this to delete duplicate information, irrelevant notes, or clean up the board.",
    "parameters": {
        "type": "object",
        "properties": {
            "nodeIds": {
                "type": "array",
                "description": "List of node IDs to delete",
                "items": {"type": "string"},
            }
        },
        "required": ["nodeIds"],
    },
}

GROUP_NODES_TOOL: Dict[str, Any] = {
    "name": ActionType.GROUP_NODES.value,
    "description": "Group multiple nodes together so they move and behave as a single unit. Use this to combine a video with its notes, or bundle related ideas.",
    "parameters": {
        "type": "object",
        "properties": {
            "nodeIds": {
                "type": "array",
                "description": "List of node IDs to group together",
                "items": {"type": "string"},
            }
        },
        "required": ["nodeIds"],
    },
}

UNGROUP_NODES_TOOL: Dict[str, Any] = {
    "name": ActionType.UNGROUP_NODES.value,
    "description": "Ungroup nodes that were previously grouped together.",
    "parameters": {
        "type": "object",
        "properties": {
            "nodeIds": {
                "type": "array",
                "description": "List of node IDs to ungroup",
                "items": {"type": "string"},
            }
        },
        "required": ["nodeIds"],
    },
}

WHITEBOARD_TOOLS: List[Dict[str, Any]] = [
    CREATE_NOTES_TOOL,
    ORGANIZE_LAYOUT_TOOL,
    CONNECT_NODES_TOOL,
    DELETE_NODES_TOOL,
    GROUP_NODES_TOOL,
    UNGROUP_NODES_TOOL,
]
