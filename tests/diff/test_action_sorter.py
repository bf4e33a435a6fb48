import pytest

from schemadelta.core import (
    AddColumn,
    AddForeignKey,
    AddIndex,
    ChangeColumn,
    ColumnDef,
    ColumnType,
    CreateTable,
    CyclicDependency,
    DropTable,
    ForeignKeyDef,
    IndexDef,
    RemoveColumn,
    RemoveIndex,
    TableDef,
)
from schemadelta.diff import ActionSorter, apply_actions, diff, sort_actions


def _table(name, *fks):
    return TableDef.build(
        name,
        columns=[
            ColumnDef("id", ColumnType("integer"), nullable=False, primary_key=True),
            ColumnDef("otherId", ColumnType("integer")),
        ],
        foreign_keys=fks,
    )


def test_create_follows_referenced_create(blog):
    users, posts = blog.get("Users"), blog.get("Posts")
    ordered = sort_actions([CreateTable("Posts", posts), CreateTable("Users", users)])
    assert [action.table for action in ordered] == ["Users", "Posts"]


def test_drop_of_referenced_table_comes_last(blog):
    users, posts = blog.get("Users"), blog.get("Posts")
    ordered = sort_actions([DropTable("Users", users), DropTable("Posts", posts)])
    assert [action.table for action in ordered] == ["Posts", "Users"]


def test_foreign_key_waits_for_new_column():
    editor = ColumnDef("editorId", ColumnType("integer"))
    fk = ForeignKeyDef("posts_editor_fk", ("editorId",), "Users", ("id",))
    index = IndexDef("posts_editor_idx", ("editorId",))
    actions = [AddForeignKey("Posts", fk), AddIndex("Posts", index), AddColumn("Posts", editor)]
    assert sort_actions(actions) == [actions[2], actions[0], actions[1]]


def test_column_removal_waits_for_index_removal():
    column = ColumnDef("email", ColumnType("string"))
    index = IndexDef("users_email_idx", ("email",), unique=True)
    actions = [RemoveColumn("Users", column), RemoveIndex("Users", index)]
    assert sort_actions(actions) == [actions[1], actions[0]]


def test_sorting_is_idempotent(empty, blog, mutual):
    for source, target in ((empty, blog), (blog, empty), (empty, mutual), (mutual, empty)):
        once = sort_actions(diff(source, target))
        assert sort_actions(once) == once


def test_sort_returns_new_list(blog):
    actions = [DropTable("Users", blog.get("Users")), DropTable("Posts", blog.get("Posts"))]
    snapshot = list(actions)
    ordered = ActionSorter().sort(actions)
    assert actions == snapshot
    assert ordered is not actions


def test_unbreakable_cycle_raises():
    a = _table("A", ForeignKeyDef("a_fk", ("otherId",), "B", ("id",)))
    b = _table("B", ForeignKeyDef("b_fk", ("otherId",), "A", ("id",)))
    with pytest.raises(CyclicDependency) as excinfo:
        sort_actions([CreateTable("A", a), CreateTable("B", b)])
    assert excinfo.value.tables == ("A", "B")


def test_dependencies_are_reported_by_position(blog):
    actions = [CreateTable("Posts", blog.get("Posts")), CreateTable("Users", blog.get("Users"))]
    assert ActionSorter().dependencies(actions) == [{1}, set()]


def test_primary_key_gain_waits_for_loss():
    id_key = ColumnDef("id", ColumnType("integer"), nullable=False, primary_key=True)
    id_plain = ColumnDef("id", ColumnType("integer"), nullable=False)
    code_plain = ColumnDef("code", ColumnType("integer"), nullable=False)
    code_key = ColumnDef("code", ColumnType("integer"), nullable=False, primary_key=True)
    gain = ChangeColumn("T", old=code_plain, new=code_key)
    loss = ChangeColumn("T", old=id_key, new=id_plain)
    assert sort_actions([gain, loss]) == [loss, gain]


def _users_with_orders(build):
    users = build.users()
    users["columns"]["code"] = {"type": "string", "nullable": False}
    users["indexes"] = {"users_code_idx": {"columns": ["code"], "unique": True}}
    orders = {
        "columns": {
            "id": {"type": "integer", "nullable": False, "primary_key": True},
            "userCode": {"type": "string"},
        },
        "foreign_keys": {
            "orders_user_fk": {
                "columns": ["userCode"],
                "referenced_table": "Users",
                "referenced_columns": ["code"],
            }
        },
    }
    return build.snapshot(Users=users, Orders=orders)


def _reversed(actions):
    return list(reversed(actions))


@pytest.mark.parametrize("arrange", [list, _reversed])
def test_new_column_index_and_reference_apply_in_order(build, users_only, arrange):
    target = _users_with_orders(build)

    up = sort_actions(arrange(diff(users_only, target)))
    steps = [(type(action).__name__, action.table) for action in up]
    assert (
        steps.index(("AddColumn", "Users"))
        < steps.index(("AddIndex", "Users"))
        < steps.index(("CreateTable", "Orders"))
    )
    assert apply_actions(users_only, up) == target

    down = sort_actions(arrange(diff(target, users_only)))
    steps = [(type(action).__name__, action.table) for action in down]
    assert steps.index(("DropTable", "Orders")) < steps.index(("RemoveIndex", "Users"))
    assert steps.index(("RemoveIndex", "Users")) < steps.index(("RemoveColumn", "Users"))
    assert apply_actions(target, down) == users_only


@pytest.mark.parametrize("arrange", [list, _reversed])
def test_foreign_key_removal_precedes_drop_of_referenced_table(build, blog, arrange):
    posts = build.posts()
    posts["foreign_keys"] = {}
    target = build.snapshot(Posts=posts)
    ordered = sort_actions(arrange(diff(blog, target)))
    kinds = [type(action).__name__ for action in ordered]
    assert kinds.index("RemoveForeignKey") < kinds.index("DropTable")
    assert apply_actions(blog, ordered) == target
