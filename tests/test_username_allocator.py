from __future__ import annotations

import pytest

from marketplace.domain import usernames
from marketplace.domain.accounts import AccountStatus
from marketplace.domain.errors import UsernameUnavailable
from marketplace.services.username_allocator import UsernameAllocator


def test_candidates_and_canonicalize():
    assert list(usernames.candidates("jane", 3)) == ["jane", "jane1", "jane2"]
    assert list(usernames.candidates("jane", 0)) == []
    assert usernames.canonicalize("jane.doe") == "jane_doe"
    assert usernames.email_local_part("jane.doe@x.com") == "jane.doe"


@pytest.mark.parametrize(
    "value,expected",
    [("ab", False), ("abc", True), ("a" * 20, True), ("a" * 21, False), ("jane-doe", False), ("jane_doe9", True), ("", False)],
)
def test_username_pattern(value, expected):
    assert usernames.is_valid_username(value) is expected


def test_first_free_suffix(make_account, accounts):
    make_account("jane@a.com", "jane")
    make_account("jane1@a.com", "jane1")
    assert UsernameAllocator(accounts).allocate("jane") == "jane2"


def test_dots_become_underscores(accounts):
    assert UsernameAllocator(accounts).allocate_for_email("jane.doe@x.com") == "jane_doe"


def test_anonymized_holders_do_not_block(make_account, accounts):
    make_account("old@a.com", "jane", status=AccountStatus.DELETED)
    allocator = UsernameAllocator(accounts)
    assert allocator.allocate("jane") == "jane"
    assert allocator.allocate("jane", exclude_anonymized=False) == "jane1"


def test_empty_local_part_falls_back(accounts):
    assert UsernameAllocator(accounts).allocate_for_email("@x.com") == "user"


def test_exhausted_space_raises(make_account, accounts):
    make_account("a@a.com", "sam")
    make_account("b@a.com", "sam1")
    with pytest.raises(UsernameUnavailable):
        UsernameAllocator(accounts, max_attempts=2).allocate("sam")
