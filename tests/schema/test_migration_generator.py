import logging

import pytest

from schemadelta.core import (
    AddColumn,
    AddForeignKey,
    AddIndex,
    ChangeColumn,
    ColumnDef,
    ColumnType,
    CreateTable,
    DropTable,
    ForeignKeyDef,
    IndexDef,
    RemoveColumn,
    RemoveForeignKey,
    RemoveIndex,
    TableDef,
    UnknownActionError,
    UnsupportedOperation,
)
from schemadelta.dialects import MySQLDialect, PostgresDialect, SQLiteDialect
from schemadelta.diff import diff, sort_actions
from schemadelta.schema import MigrationGenerator, Statement

postgres = MigrationGenerator(PostgresDialect())
sqlite = MigrationGenerator(SQLiteDialect())


def test_create_table_sql(users_only):
    statement = postgres.render(CreateTable("Users", users_only.get("Users")))
    assert statement.sql == (
        'CREATE TABLE "Users" ("id" INTEGER NOT NULL PRIMARY KEY GENERATED BY DEFAULT AS IDENTITY, '
        '"name" VARCHAR(255) NOT NULL)',
    )
    assert statement.destructive is False


def test_create_table_includes_foreign_keys_and_indexes(blog):
    statement = sqlite.render(CreateTable("Posts", blog.get("Posts")))
    assert statement.sql == (
        'CREATE TABLE "Posts" ("id" INTEGER NOT NULL PRIMARY KEY AUTOINCREMENT, '
        '"title" VARCHAR(255) NOT NULL, "userId" INTEGER NOT NULL, '
        'CONSTRAINT "posts_user_fk" FOREIGN KEY ("userId") REFERENCES "Users" ("id") ON DELETE CASCADE)',
        'CREATE INDEX "posts_user_idx" ON "Posts" ("userId")',
    )
    assert statement.text.endswith('("userId");')


def test_composite_primary_key_is_table_level():
    table = TableDef.build(
        "Memberships",
        columns=[
            ColumnDef("userId", ColumnType("integer"), primary_key=True),
            ColumnDef("groupId", ColumnType("integer"), primary_key=True),
            ColumnDef("active", ColumnType("boolean"), default=True),
        ],
    )
    [sql] = postgres.render(CreateTable("Memberships", table)).sql
    assert sql == (
        'CREATE TABLE "Memberships" ("userId" INTEGER NOT NULL, "groupId" INTEGER NOT NULL, '
        '"active" BOOLEAN DEFAULT TRUE, PRIMARY KEY ("userId", "groupId"))'
    )


def test_column_statements():
    email = ColumnDef("email", ColumnType("string", length=320), unique=True, db_default="''")
    assert postgres.render(AddColumn("Users", email)).sql == (
        'ALTER TABLE "Users" ADD COLUMN "email" VARCHAR(320) UNIQUE DEFAULT \'\'',
    )
    assert postgres.render(RemoveColumn("Users", email)).sql == (
        'ALTER TABLE "Users" DROP COLUMN "email"',
    )


def test_destructive_statements_are_flagged(caplog, users_only):
    caplog.set_level(logging.WARNING, logger="schemadelta.schema.generator")
    statement = postgres.render(DropTable("Users", users_only.get("Users")))
    assert statement.sql == ('DROP TABLE "Users"',)
    assert statement.destructive is True
    assert any("DROP TABLE" in record.message for record in caplog.records)


def test_change_column_delegates_to_dialect():
    old = ColumnDef("name", ColumnType("string", length=255), nullable=False)
    new = ColumnDef("name", ColumnType("string", length=500), nullable=False)
    mysql = MigrationGenerator(MySQLDialect())
    assert mysql.render(ChangeColumn("Users", old=old, new=new)).sql == (
        "ALTER TABLE `Users` MODIFY COLUMN `name` VARCHAR(500) NOT NULL",
    )
    with pytest.raises(UnsupportedOperation):
        sqlite.render(ChangeColumn("Users", old=old, new=new))


def test_index_and_foreign_key_statements():
    index = IndexDef("users_name_idx", ("name",), unique=True, type="btree")
    fk = ForeignKeyDef("posts_user_fk", ("userId",), "Users", ("id",), on_update="CASCADE")
    assert postgres.render(AddIndex("Users", index)).sql == (
        'CREATE UNIQUE INDEX "users_name_idx" ON "Users" USING btree ("name")',
    )
    assert sqlite.render(AddIndex("Users", index)).sql == (
        'CREATE UNIQUE INDEX "users_name_idx" ON "Users" ("name")',
    )
    assert postgres.render(RemoveIndex("Users", index)).sql == ('DROP INDEX "users_name_idx"',)
    assert postgres.render(AddForeignKey("Posts", fk)).sql == (
        'ALTER TABLE "Posts" ADD CONSTRAINT "posts_user_fk" FOREIGN KEY ("userId") '
        'REFERENCES "Users" ("id") ON UPDATE CASCADE',
    )
    assert postgres.render(RemoveForeignKey("Posts", fk)).sql == (
        'ALTER TABLE "Posts" DROP CONSTRAINT "posts_user_fk"',
    )
    with pytest.raises(UnsupportedOperation):
        sqlite.render(AddForeignKey("Posts", fk))


def test_generate_pairs_statements_with_log(empty, mutual):
    script = postgres.generate(sort_actions(diff(empty, mutual)))
    assert len(script.statements) == len(script.log) == 4
    assert all(isinstance(statement, Statement) for statement in script.statements)
    assert script.log[0] == 'createTable "Posts", deps: []'
    assert script.log[2] == 'addForeignKey "posts_pinned_fk" on table "Posts" referencing "Comments"'
    assert len(script.commands) == 4


def test_empty_action_list(empty):
    script = postgres.generate([])
    assert script.is_empty
    assert script.commands == []


def test_unknown_action_is_rejected():
    class RenameTable:
        table = "Users"

    with pytest.raises(UnknownActionError):
        postgres.generate([RenameTable()])


def test_sqlite_rebuilds_table_to_change_column(build):
    source = build.snapshot(Users=build.users(255))
    target = build.snapshot(Users=build.users(500))
    script = sqlite.generate(sort_actions(diff(source, target)), source=source)
    assert script.log == ('changeColumn "name" on table "Users" (type)',)
    assert script.commands == [
        'CREATE TABLE "_new_Users" ("id" INTEGER NOT NULL PRIMARY KEY AUTOINCREMENT, '
        '"name" VARCHAR(500) NOT NULL)',
        'INSERT INTO "_new_Users" ("id", "name") SELECT "id", "name" FROM "Users"',
        'DROP TABLE "Users"',
        'ALTER TABLE "_new_Users" RENAME TO "Users"',
    ]
    assert script.statements[0].destructive is False


def test_sqlite_rebuild_recreates_indexes(blog):
    fk = blog.get("Posts").foreign_keys["posts_user_fk"]
    script = sqlite.generate([RemoveForeignKey("Posts", fk)], source=blog)
    assert script.commands == [
        'CREATE TABLE "_new_Posts" ("id" INTEGER NOT NULL PRIMARY KEY AUTOINCREMENT, '
        '"title" VARCHAR(255) NOT NULL, "userId" INTEGER NOT NULL)',
        'INSERT INTO "_new_Posts" ("id", "title", "userId") SELECT "id", "title", "userId" FROM "Posts"',
        'DROP TABLE "Posts"',
        'ALTER TABLE "_new_Posts" RENAME TO "Posts"',
        'CREATE INDEX "posts_user_idx" ON "Posts" ("userId")',
    ]


def test_sqlite_rebuild_needs_source_snapshot(blog):
    fk = blog.get("Posts").foreign_keys["posts_user_fk"]
    with pytest.raises(UnsupportedOperation, match="generate from the source snapshot"):
        sqlite.generate([RemoveForeignKey("Posts", fk)])


def test_mysql_change_does_not_restate_unique():
    old = ColumnDef("email", ColumnType("string"), unique=True)
    new = ColumnDef("email", ColumnType("string"), nullable=False, unique=True)
    mysql = MigrationGenerator(MySQLDialect())
    assert mysql.render(ChangeColumn("T", old=old, new=new)).sql == (
        "ALTER TABLE `T` MODIFY COLUMN `email` VARCHAR(255) NOT NULL",
    )
    plain = ColumnDef("email", ColumnType("string"))
    assert mysql.render(ChangeColumn("T", old=plain, new=old)).sql == (
        "ALTER TABLE `T` MODIFY COLUMN `email` VARCHAR(255)",
        "ALTER TABLE `T` ADD UNIQUE INDEX `email` (`email`)",
    )
    assert mysql.render(ChangeColumn("T", old=old, new=plain)).sql == (
        "ALTER TABLE `T` MODIFY COLUMN `email` VARCHAR(255)",
        "ALTER TABLE `T` DROP INDEX `email`",
    )


def _keyed_table(*key):
    return {
        "columns": {
            name: {"type": "integer", "nullable": False, "primary_key": name in key}
            for name in ("id", "code", "region")
        }
    }


def test_moving_primary_key_drops_old_key_first(build):
    source = build.snapshot(T=_keyed_table("id"))
    target = build.snapshot(T=_keyed_table("code"))
    script = postgres.generate(sort_actions(diff(source, target)), source=source)
    assert script.commands == [
        'ALTER TABLE "T" DROP CONSTRAINT "T_pkey"',
        'ALTER TABLE "T" ADD PRIMARY KEY ("code")',
    ]
    down = postgres.generate(sort_actions(diff(target, source)), source=target)
    assert down.commands == [
        'ALTER TABLE "T" DROP CONSTRAINT "T_pkey"',
        'ALTER TABLE "T" ADD PRIMARY KEY ("id")',
    ]


def test_extending_composite_primary_key_restates_full_key(build):
    source = build.snapshot(T=_keyed_table("id"))
    target = build.snapshot(T=_keyed_table("id", "region"))
    script = postgres.generate(sort_actions(diff(source, target)), source=source)
    assert script.commands == [
        'ALTER TABLE "T" DROP CONSTRAINT "T_pkey"',
        'ALTER TABLE "T" ADD PRIMARY KEY ("id", "region")',
    ]
    mysql = MigrationGenerator(MySQLDialect())
    down = mysql.generate(sort_actions(diff(target, source)), source=target)
    assert down.commands == [
        "ALTER TABLE `T` DROP PRIMARY KEY",
        "ALTER TABLE `T` MODIFY COLUMN `region` INT NOT NULL",
        "ALTER TABLE `T` ADD PRIMARY KEY (`id`)",
    ]


def test_change_without_renderable_difference_is_rejected():
    column = ColumnDef("id", ColumnType("integer"), nullable=False, primary_key=True)
    toggled = ColumnDef("id", ColumnType("integer"), nullable=False, primary_key=True, unique=True)
    with pytest.raises(UnsupportedOperation, match="changes nothing"):
        postgres.render(ChangeColumn("T", old=column, new=toggled))
