import pytest

from nlql.common.errors import TranslationError, TranslationErrorKind
from nlql.translation.extraction import extract_sql, parses_as_sql


class TestExtractSql:

    def test_plain_sql(self):
        assert extract_sql("SELECT * FROM users") == "SELECT * FROM users"

    def test_fenced_block_with_language(self):
        raw = "Here you go:\n```sql\nSELECT id\nFROM users\n```\nLet me know!"
        assert extract_sql(raw) == "SELECT id\nFROM users"

    def test_fenced_block_without_language(self):
        assert extract_sql("```\nSELECT 1\n```") == "SELECT 1"

    def test_inline_fence(self):
        assert extract_sql("```SELECT 1```") == "SELECT 1"

    def test_first_fenced_block_wins(self):
        raw = "```sql\nSELECT 1\n```\nor\n```sql\nSELECT 2\n```"
        assert extract_sql(raw) == "SELECT 1"

    def test_preamble_without_fence(self):
        raw = "Sure, this counts orders per status:\nSELECT status, COUNT(*) FROM orders GROUP BY status"
        assert extract_sql(raw) == "SELECT status, COUNT(*) FROM orders GROUP BY status"

    def test_keyword_match_is_case_insensitive(self):
        assert extract_sql("with t as (select 1) select * from t").startswith("with t")

    @pytest.mark.parametrize("raw", [
        "",
        "I'm sorry, I can't help with that request.",
        "The question is ambiguous; please clarify which table you mean.",
    ])
    def test_no_sql_is_malformed(self, raw):
        with pytest.raises(TranslationError) as exc:
            extract_sql(raw)
        assert exc.value.error_kind == TranslationErrorKind.MALFORMED_RESPONSE
        assert not exc.value.is_transient

    def test_trailing_explanation_is_dropped(self):
        raw = "SELECT * FROM users;\n\nThis query returns every user."
        assert extract_sql(raw) == "SELECT * FROM users;"

    def test_multi_statement_block_is_kept(self):
        raw = "SELECT * FROM users;\n\nDELETE FROM orders;\n\nThat should do it."
        assert extract_sql(raw) == "SELECT * FROM users;\n\nDELETE FROM orders;"

    def test_multiline_statement_without_blank_lines(self):
        raw = "SELECT status,\n       COUNT(*)\nFROM orders\nGROUP BY status\n\nCounts orders per status."
        assert extract_sql(raw) == "SELECT status,\n       COUNT(*)\nFROM orders\nGROUP BY status"

    def test_keyword_prose_line_is_skipped(self):
        raw = "Update: here is the corrected query.\nSELECT id FROM users"
        assert extract_sql(raw) == "SELECT id FROM users"

    def test_refusal_starting_with_keyword_is_malformed(self):
        with pytest.raises(TranslationError) as exc:
            extract_sql("Update: I'm sorry, but I can't generate SQL that deletes data.")
        assert exc.value.error_kind == TranslationErrorKind.MALFORMED_RESPONSE

    def test_unterminated_keyword_line_is_malformed(self):
        with pytest.raises(TranslationError) as exc:
            extract_sql("Select the users table and I'll explain", dialect="sqlite")
        assert exc.value.error_kind == TranslationErrorKind.MALFORMED_RESPONSE


def test_parses_as_sql():
    assert parses_as_sql("SELECT 1", "postgresql")
    assert not parses_as_sql("SELECT 'open", "sqlite")
