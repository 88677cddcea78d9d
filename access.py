"""
Authorization gate for itineraries.

`classify` derives the caller's role once; `authorize` checks it against the
permission table and raises Forbidden on a miss.
"""
from enum import Enum
from typing import Any, Dict, Optional

from errors import Forbidden


class Role(str, Enum):
    OWNER = "owner"
    COLLABORATOR = "collaborator"
    NONE = "none"


class Action(str, Enum):
    READ = "read"
    UPDATE = "update"
    DELETE = "delete"
    MANAGE_COLLABORATORS = "manage_collaborators"
    EDIT_ATTRACTIONS = "edit_attractions"
    PUBLISH = "publish"
    SYNC = "sync"


PERMISSIONS = {
    Role.OWNER: set(Action),
    # DELETE for a collaborator means leaving the itinerary
    Role.COLLABORATOR: {Action.READ, Action.UPDATE, Action.DELETE, Action.EDIT_ATTRACTIONS, Action.SYNC},
    Role.NONE: set(),
}

_DENIED = {
    Action.READ: "You are not authorized to view this itinerary",
    Action.UPDATE: "You are not authorized to edit this itinerary",
    Action.DELETE: "You are not authorized to delete this itinerary",
    Action.MANAGE_COLLABORATORS: "Only the owner can manage collaborators",
    Action.EDIT_ATTRACTIONS: "You are not authorized to change this itinerary's attractions",
    Action.PUBLISH: "Only the owner can share this itinerary",
    Action.SYNC: "You are not authorized to sync this itinerary",
}


def classify(itinerary: Dict[str, Any], caller_id: Optional[str]) -> Role:
    if not caller_id:
        return Role.NONE
    caller = str(caller_id)
    if str(itinerary.get("user_id")) == caller:
        return Role.OWNER
    if caller in {str(c) for c in itinerary.get("collaborators", [])}:
        return Role.COLLABORATOR
    return Role.NONE


def can(role: Role, action: Action) -> bool:
    return action in PERMISSIONS[role]


def authorize(itinerary: Dict[str, Any], caller_id: Optional[str], action: Action) -> Role:
    """Return the caller's role if it permits `action`, else raise Forbidden.

    Public itineraries are readable by anyone.
    """
    role = classify(itinerary, caller_id)
    if can(role, action):
        return role
    if action is Action.READ and itinerary.get("public"):
        return role
    raise Forbidden(_DENIED[action])
