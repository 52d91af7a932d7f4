from __future__ import annotations

from enum import StrEnum


class ChannelState(StrEnum):
    CONNECTING = "connecting"
    OPEN = "open"
    CLOSING = "closing"
    CLOSED = "closed"


class EnvelopeType(StrEnum):
    NEW_MESSAGE = "NEW_MESSAGE"
    NEW_GROUP_MESSAGE = "NEW_GROUP_MESSAGE"
    GROUP_MESSAGE_REPLY = "GROUP_MESSAGE_REPLY"
    # control frames on /ws
    PING = "PING"
    PONG = "PONG"
    ERROR = "ERROR"


class Role(StrEnum):
    ADMIN = "company_admin"
    TEAM_LEADER = "team_leader"
    EMPLOYEE = "company_member"


class DirectMessageKind(StrEnum):
    DIRECT_MESSAGE = "direct_message"
    ADMIN_TO_EMPLOYEE = "admin_to_employee"
    ADMIN_TO_TEAM_LEADER = "admin_to_team_leader"
    TEAM_LEADER_TO_EMPLOYEE = "team_leader_to_employee"
    EMPLOYEE_TO_TEAM_LEADER = "employee_to_team_leader"
