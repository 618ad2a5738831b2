import re

import pytest

from models import Gender
from core.membership_manager import MembershipManager
from core.room_manager import RoomManager
from core.sheet_manager import SheetManager
from core.user_manager import UserManager
from core.exceptions import (
    ConflictingUniqueField,
    HasDependents,
    InvalidAccessCode,
    SheetNotFound,
    UserNotFound,
)


def test_create_sheet_generates_code(db, notifier):
    sheet = SheetManager.create_sheet(db, "Dormitory A", notifier=notifier)

    assert re.fullmatch(r"SDC-\d{4}", sheet.code)
    assert notifier.names() == ["sheet_created"]
    # the broadcast payload never carries the access code
    assert "code" not in notifier.events[0][1]


def test_create_sheet_duplicate_name(db, sheet):
    with pytest.raises(ConflictingUniqueField):
        SheetManager.create_sheet(db, "Dormitory A")


def test_code_collision_regenerates(db, monkeypatch):
    codes = iter(["SDC-1111", "SDC-1111", "SDC-2222"])
    monkeypatch.setattr("core.sheet_manager.generate_sheet_code", lambda: next(codes))

    first = SheetManager.create_sheet(db, "Dormitory A")
    second = SheetManager.create_sheet(db, "Dormitory B")

    assert first.code == "SDC-1111"
    assert second.code == "SDC-2222"


def test_update_sheet_name(db, sheet):
    SheetManager.create_sheet(db, "Dormitory B")

    assert SheetManager.update_sheet(db, sheet.id, "Dormitory C").name == "Dormitory C"
    with pytest.raises(ConflictingUniqueField):
        SheetManager.update_sheet(db, sheet.id, "Dormitory B")
    with pytest.raises(SheetNotFound):
        SheetManager.update_sheet(db, "missing", "Dormitory D")


def test_delete_sheet_requires_no_rooms(db, sheet, make_room, notifier):
    room = make_room()

    with pytest.raises(HasDependents):
        SheetManager.delete_sheet(db, sheet.id)

    RoomManager.delete_room(db, room.id)
    SheetManager.delete_sheet(db, sheet.id, notifier=notifier)
    assert notifier.events == [("sheet_deleted", {"sheetId": sheet.id})]
    with pytest.raises(SheetNotFound):
        SheetManager.get_sheet_by_id(db, sheet.id)


def test_validate_code(db, sheet):
    assert SheetManager.validate_code(db, sheet.code) == sheet.id
    assert SheetManager.validate_code(db, f"  {sheet.code.lower()} ") == sheet.id

    with pytest.raises(InvalidAccessCode):
        SheetManager.validate_code(db, "")
    with pytest.raises(InvalidAccessCode):
        SheetManager.validate_code(db, "SDC-XXXX")


def test_sheet_hydrates_rooms_and_members(db, sheet, make_room):
    room = make_room(gender=Gender.FEMALE)
    MembershipManager.join_room(db, room.id, "Jane", "Doe")

    loaded = SheetManager.get_sheet_by_id(db, sheet.id)

    assert loaded.rooms[0].members[0].user.firstname == "Jane"


def test_delete_user_requires_no_memberships(db, make_room):
    room = make_room()
    membership = MembershipManager.join_room(db, room.id, "John", "Doe").members[0]
    user_id = membership.user_id

    with pytest.raises(HasDependents):
        UserManager.delete_user(db, user_id)

    MembershipManager.remove_member(db, room.id, membership.id)
    UserManager.delete_user(db, user_id)
    with pytest.raises(UserNotFound):
        UserManager.get_user_by_id(db, user_id)
