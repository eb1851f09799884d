import pytest
from werkzeug.security import check_password_hash

from src.task_manager.task_manager.core.enums import Role
from src.task_manager.task_manager.core.exceptions import (
    AuthenticationError,
    AuthorizationError,
    NotFoundError,
    ValidationError,
)


def test_authenticate_ok(world):
    session_user = world.container.auth_service.authenticate("priya", "secret123")
    assert session_user.user_id == 2
    assert session_user.org_id == 1
    assert session_user.role == Role.STAFF
    assert session_user.department == "Medical"


@pytest.mark.parametrize("username,password", [("priya", "wrong"), ("nobody", "secret123"), ("", "")])
def test_authenticate_rejects_bad_credentials(world, username, password):
    with pytest.raises(AuthenticationError):
        world.container.auth_service.authenticate(username, password)


def test_inactive_user_cannot_log_in(world):
    world.users.set_active(2, is_active=False)
    with pytest.raises(AuthenticationError):
        world.container.auth_service.authenticate("priya", "secret123")


def test_placeholder_hash_never_authenticates(world):
    world.users.update_user(
        3,
        full_name="Ravi Kumar",
        role=Role.STAFF,
        whatsapp_number=None,
        department="Nursing",
        is_active=True,
        password_hash="CHANGE_ME",
    )
    with pytest.raises(AuthenticationError):
        world.container.auth_service.authenticate("ravi", "CHANGE_ME")


def test_add_member_normalizes_whatsapp_and_department(world):
    service = world.container.user_service
    user_id = service.add_member(
        current_role=Role.ADMIN,
        org_id=1,
        full_name="  Meera Nair ",
        username="meera",
        password="secret123",
        whatsapp_number="98765 43210",
        department="nursing",
    )
    user = world.users.get_by_id(user_id)
    assert user.full_name == "Meera Nair"
    assert user.whatsapp_number == "+919876543210"
    assert user.department == "Nursing"
    assert check_password_hash(user.password_hash, "secret123")


def test_add_member_validation(world):
    service = world.container.user_service
    base = dict(current_role=Role.ADMIN, org_id=1, full_name="X", username="x", password="secret123")

    with pytest.raises(AuthorizationError):
        service.add_member(**{**base, "current_role": Role.STAFF})
    with pytest.raises(ValidationError, match="Username already exists"):
        service.add_member(**{**base, "username": "priya"})
    with pytest.raises(ValidationError, match="at least 6"):
        service.add_member(**{**base, "password": "123"})
    with pytest.raises(ValidationError, match="10 digits"):
        service.add_member(**base, whatsapp_number="12345")
    with pytest.raises(ValidationError, match="Unknown department"):
        service.add_member(**base, department="Radiology")
    with pytest.raises(ValidationError):
        service.add_member(**{**base, "role": Role.SUPERADMIN})


def test_update_member_keeps_password_when_blank(world):
    old_hash = world.users.get_by_id(2).password_hash
    world.container.user_service.update_member(
        current_role=Role.ADMIN,
        org_id=1,
        user_id=2,
        full_name="Priya S",
        role=Role.ADMIN,
        whatsapp_number="+919800000002",
        department="Medical",
    )
    user = world.users.get_by_id(2)
    assert user.full_name == "Priya S"
    assert user.role == Role.ADMIN
    assert user.password_hash == old_hash


def test_member_of_other_org_is_not_found(world):
    with pytest.raises(NotFoundError):
        world.container.user_service.set_active(current_role=Role.ADMIN, org_id=1, user_id=4, is_active=False)


def test_delete_member_rules(world):
    service = world.container.user_service
    with pytest.raises(ValidationError, match="your own account"):
        service.delete_member(current_role=Role.ADMIN, current_user_id=1, org_id=1, user_id=1)

    service.delete_member(current_role=Role.ADMIN, current_user_id=1, org_id=1, user_id=3)
    assert world.users.get_by_id(3) is None
