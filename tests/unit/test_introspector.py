import pytest

from nlql.common.errors import IntrospectionError, PipelineStage
from nlql.datasources.database import Database
from nlql.schema.introspector import SchemaIntrospector


class TestSchemaIntrospector:

    def test_tables_in_lexical_order(self, database):
        snapshot = SchemaIntrospector().introspect(database)
        assert snapshot.table_names == ("orders", "users")
        assert snapshot.dialect == "sqlite"
        assert snapshot.connection_id == database.connection_id

    def test_columns_keep_declared_order(self, database):
        users = SchemaIntrospector().introspect(database).get_table("users")
        assert users.column_names == ("id", "name", "email")
        assert users.primary_key == ("id",)
        name = users.columns[1]
        assert name.declared_type == "TEXT"
        assert name.nullable is False

    def test_foreign_keys_flattened(self, database):
        orders = SchemaIntrospector().introspect(database).get_table("ORDERS")
        assert len(orders.foreign_keys) == 1
        fk = orders.foreign_keys[0]
        assert (fk.column, fk.referred_table, fk.referred_column) == ("user_id", "users", "id")

    def test_system_tables_excluded(self, database):
        with database.connect() as conn:
            conn.exec_driver_sql("CREATE TABLE events (id INTEGER PRIMARY KEY AUTOINCREMENT, name TEXT)")
            conn.exec_driver_sql("INSERT INTO events (name) VALUES ('signup')")
            conn.commit()
        names = SchemaIntrospector().introspect(database).table_names
        assert "events" in names
        assert not any(n.startswith("sqlite_") for n in names)

    def test_unreadable_database_raises(self, tmp_path):
        # A directory cannot be opened as a SQLite database.
        db = Database(str(tmp_path)).open()
        try:
            with pytest.raises(IntrospectionError) as exc:
                SchemaIntrospector().introspect(db)
            assert exc.value.stage == PipelineStage.INTROSPECTING
        finally:
            db.close()
