"""Migration splitting and application."""

from EAP.services.database.schema_manager import SchemaManager, load_migrations, split_statements


def test_split_drops_comments_and_trailing_semicolons():
    sql = "-- header\nCREATE TABLE a (\n  id INT\n);\n\n-- next\nCREATE TABLE b (id INT);\n"

    assert split_statements(sql) == ["CREATE TABLE a (\n  id INT\n)", "CREATE TABLE b (id INT)"]


def test_bundled_migration_defines_tables_and_trigger():
    name, sql = load_migrations()[0]
    statements = split_statements(sql)

    assert name == "001_initial_schema.sql"
    assert len(statements) == 4
    assert "ON DELETE CASCADE" in statements[2]
    assert statements[3].startswith("CREATE TRIGGER `update_profiles_updated_at`")


def test_existing_trigger_is_skipped(rds):
    rds.triggers.add("update_profiles_updated_at")
    _, sql = load_migrations()[0]

    pending = SchemaManager(rds).pending_statements(sql)

    assert len(pending) == 3
    assert not any(s.startswith("CREATE TRIGGER") for s in pending)


def test_ensure_schema_executes_pending_statements(rds):
    assert SchemaManager(rds).ensure_schema() == 4
    assert rds.statements[0].startswith("CREATE TABLE IF NOT EXISTS `profiles`")
