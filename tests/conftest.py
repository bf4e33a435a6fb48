from types import SimpleNamespace

import pytest

from schemadelta.core import Snapshot


def users_table(name_length=255):
    return {
        "columns": {
            "id": {"type": "integer", "nullable": False, "primary_key": True, "auto_increment": True},
            "name": {"type": {"name": "string", "length": name_length}, "nullable": False},
        }
    }


def posts_table():
    return {
        "columns": {
            "id": {"type": "integer", "nullable": False, "primary_key": True, "auto_increment": True},
            "title": {"type": "string", "nullable": False},
            "userId": {"type": "integer", "nullable": False},
        },
        "indexes": {"posts_user_idx": {"columns": ["userId"]}},
        "foreign_keys": {
            "posts_user_fk": {
                "columns": ["userId"],
                "referenced_table": "Users",
                "referenced_columns": ["id"],
                "on_delete": "CASCADE",
            }
        },
    }


def snapshot(**tables):
    return Snapshot.from_dict({"tables": tables})


@pytest.fixture
def empty():
    return Snapshot.empty()


@pytest.fixture
def users_only():
    return snapshot(Users=users_table())


@pytest.fixture
def blog():
    return snapshot(Users=users_table(), Posts=posts_table())


@pytest.fixture
def mutual():
    """Posts and Comments referencing each other."""
    return snapshot(
        Posts={
            "columns": {
                "id": {"type": "integer", "nullable": False, "primary_key": True},
                "pinnedCommentId": {"type": "integer"},
            },
            "foreign_keys": {
                "posts_pinned_fk": {
                    "columns": ["pinnedCommentId"],
                    "referenced_table": "Comments",
                    "referenced_columns": ["id"],
                }
            },
        },
        Comments={
            "columns": {
                "id": {"type": "integer", "nullable": False, "primary_key": True},
                "postId": {"type": "integer", "nullable": False},
            },
            "foreign_keys": {
                "comments_post_fk": {
                    "columns": ["postId"],
                    "referenced_table": "Posts",
                    "referenced_columns": ["id"],
                    "on_delete": "CASCADE",
                }
            },
        },
    )


@pytest.fixture
def build():
    """Factories for tests that need variations of the shared tables."""
    return SimpleNamespace(users=users_table, posts=posts_table, snapshot=snapshot)
