from langchain_core.messages import AIMessage, HumanMessage, SystemMessage

from nlql.schema.models import ColumnInfo, ForeignKeyRef, SchemaSnapshot, TableInfo
from nlql.translation.prompt_builder import (
    HistoryTurn,
    PromptBuilder,
    TranslationRequest,
    keywords,
    render_table,
)


def _table(name, *columns, pk=("id",), fks=()):
    return TableInfo(
        name=name,
        columns=tuple(ColumnInfo(name=c, declared_type="TEXT") for c in ("id",) + columns),
        primary_key=pk,
        foreign_keys=fks,
    )


SNAPSHOT = SchemaSnapshot(
    connection_id="sqlite:///shop.db",
    dialect="sqlite",
    tables=(
        _table("audit_log", "event", "created_at"),
        _table("orders", "user_id", "status", "total",
               fks=(ForeignKeyRef(column="user_id", referred_table="users", referred_column="id"),)),
        _table("products", "title", "price"),
        _table("users", "name", "email"),
    ),
)


class TestKeywords:

    def test_lowercases_and_singularizes(self):
        assert keywords("Show all USERS with Orders") == {"show", "all", "user", "with", "order"}

    def test_keeps_double_s(self):
        assert "address" in keywords("addresses by address")


class TestRenderTable:

    def test_block_format(self):
        table = TableInfo(
            name="orders",
            columns=(
                ColumnInfo(name="id", declared_type="INTEGER", nullable=False),
                ColumnInfo(name="user_id", declared_type="INTEGER"),
            ),
            primary_key=("id",),
            foreign_keys=(ForeignKeyRef(column="user_id", referred_table="users", referred_column="id"),),
        )
        assert render_table(table) == (
            "TABLE orders (\n"
            "  id INTEGER NOT NULL PK\n"
            "  user_id INTEGER\n"
            "  FK user_id -> users.id\n"
            ")"
        )


class TestPromptBuilder:

    def test_deterministic(self):
        builder = PromptBuilder()
        request = TranslationRequest(question="count orders by status", snapshot=SNAPSHOT)
        first = builder.build(request)
        second = builder.build(request)
        assert first.system == second.system
        assert first.user == second.user

    def test_dialect_and_row_limit_in_system_prompt(self):
        prompt = PromptBuilder(row_limit=250).build(TranslationRequest(question="anything", snapshot=SNAPSHOT))
        assert "sqlite" in prompt.system
        assert "250" in prompt.system

    def test_relevant_tables_rank_first(self):
        builder = PromptBuilder()
        ranked = builder.rank_tables("show the email of users", SNAPSHOT.tables)
        # users matches by name and by the email column, orders only through user_id.
        assert [t.name for t in ranked] == ["users", "orders", "audit_log", "products"]

    def test_table_name_outweighs_column_match(self):
        builder = PromptBuilder()
        # "status" is a column of orders; "products" matches a table name.
        ranked = builder.rank_tables("products status", SNAPSHOT.tables)
        assert ranked[0].name == "products"
        assert ranked[1].name == "orders"

    def test_all_tables_fit_in_large_budget(self):
        prompt = PromptBuilder(schema_char_budget=100000).build(
            TranslationRequest(question="show all users", snapshot=SNAPSHOT)
        )
        for name in SNAPSHOT.table_names:
            assert f"TABLE {name} (" in prompt.user
        assert "Other tables" not in prompt.user

    def test_budget_overflow_lists_remaining_tables(self):
        users_block = render_table(SNAPSHOT.get_table("users"))
        builder = PromptBuilder(schema_char_budget=len(users_block) + 2 + 45)
        prompt = builder.build(TranslationRequest(question="show all users", snapshot=SNAPSHOT))

        assert "TABLE users (" in prompt.user
        assert "TABLE orders (" not in prompt.user
        assert "Other tables: orders, audit_log, products" in prompt.user

    def test_tiny_budget_reports_omitted_count(self):
        builder = PromptBuilder(schema_char_budget=10)
        prompt = builder.build(TranslationRequest(question="show all users", snapshot=SNAPSHOT))
        assert "TABLE " not in prompt.user
        assert "(+4 more)" in prompt.user

    def test_empty_schema(self):
        empty = SchemaSnapshot(connection_id="sqlite://", dialect="sqlite")
        prompt = PromptBuilder().build(TranslationRequest(question="anything", snapshot=empty))
        assert "(no tables)" in prompt.user

    def test_history_becomes_chat_turns(self):
        request = TranslationRequest(
            question="only the shipped ones",
            snapshot=SNAPSHOT,
            history=(HistoryTurn(question="show all orders", sql="SELECT * FROM orders"),),
        )
        messages = PromptBuilder().build(request).to_messages()
        assert [type(m) for m in messages] == [SystemMessage, HumanMessage, AIMessage, HumanMessage]
        assert messages[1].content == "show all orders"
        assert messages[2].content == "SELECT * FROM orders"
        assert "only the shipped ones" in messages[3].content

    def test_braces_in_question_survive(self):
        request = TranslationRequest(question="users named {admin}", snapshot=SNAPSHOT)
        messages = PromptBuilder().build(request).to_messages()
        assert "{admin}" in messages[-1].content
