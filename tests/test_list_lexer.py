"""Tests for the list literal lexer."""

import pytest

from typed_props.parsing import ListLexer, split_list_literal


class TestListLexer:
    """Tests for tokenizing list literals."""

    def test_tokenize(self):
        """Test the token stream for a braced literal."""
        lexer = ListLexer()
        lexer.build()

        tokens = lexer.tokenize("1, 'a b',c")
        assert [t.type for t in tokens] == ["BARE", "COMMA", "QUOTED", "COMMA", "BARE"]
        assert tokens[2].value == "a b"

    def test_unterminated_quote(self):
        """Test that an unterminated quote is rejected."""
        lexer = ListLexer()
        lexer.build()

        with pytest.raises(ValueError, match="Unterminated quote"):
            lexer.split("'abc")


class TestSplitListLiteral:
    """Tests for split_list_literal()."""

    def test_braced(self):
        """Test a braced, comma separated literal."""
        assert split_list_literal("{1, 2, 3}") == ["1", "2", "3"]

    def test_whitespace_delimited(self):
        """Test that whitespace separates elements too."""
        assert split_list_literal("1 2\t3\n4") == ["1", "2", "3", "4"]

    @pytest.mark.parametrize("text", ["", " ", "{}", "{  }"])
    def test_empty(self, text):
        """Test that empty literals give no elements."""
        assert split_list_literal(text) == []

    def test_quoted_elements(self):
        """Test that quoted elements keep delimiters."""
        assert split_list_literal("'a, b', \"c d\"") == ["a, b", "c d"]

    def test_empty_quoted_element(self):
        """Test that an empty quoted element is kept."""
        assert split_list_literal("a, '', b") == ["a", "", "b"]

    def test_repeated_commas(self):
        """Test that empty bare elements are dropped."""
        assert split_list_literal("{1,,2}") == ["1", "2"]

    def test_malformed_element_is_one_token(self):
        """Test that a malformed number stays a single element."""
        assert split_list_literal("1a3") == ["1a3"]

    @pytest.mark.parametrize("text", ["1\f2", "1\v2", "1\u00a02", "1,\u2003 2"])
    def test_other_whitespace_delimits(self, text):
        """Test that form feeds, vertical tabs and Unicode spaces separate elements."""
        assert split_list_literal(text) == ["1", "2"]

    def test_unterminated_double_quote(self):
        """Test that the error names the quote, not the following text."""
        with pytest.raises(ValueError, match="Unterminated quote at position 3"):
            split_list_literal("a, \"bc")
