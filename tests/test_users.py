import pytest

from conftest import ADMIN, SECOND_ADMIN, TECHNICIAN
from servicedesk.users import Actor, DirectoryRecipientResolver, Role


def test_display_name_falls_back_to_email_then_system():
    assert Actor(id=1, role=Role.ADMIN, full_name="Ayla", email="a@example.com").display_name == "Ayla"
    assert Actor(id=1, role=Role.ADMIN, email="a@example.com").display_name == "a@example.com"
    assert Actor(id=1, role=Role.ADMIN).display_name == "System"


@pytest.mark.asyncio
async def test_directory_finds_active_users_only(directory):
    assert await directory.find_by_id(TECHNICIAN.id) == TECHNICIAN
    assert await directory.find_by_id(99) is None
    assert await directory.find_by_id(1234) is None


@pytest.mark.asyncio
async def test_directory_lists_by_role(directory):
    admins = await directory.list_by_role(Role.ADMIN)

    assert admins == [ADMIN, SECOND_ADMIN]


@pytest.mark.asyncio
async def test_recipient_resolver_returns_admin_ids(directory):
    resolver = DirectoryRecipientResolver(directory)

    assert await resolver.admin_ids() == [ADMIN.id, SECOND_ADMIN.id]
