"""Property-based tests for Scope parsing."""

from hypothesis import given, settings, strategies as st

from identity_kit.models import Scope

scope_token = st.text(
    alphabet=st.characters(min_codepoint=0x21, max_codepoint=0x7E),
    min_size=1,
    max_size=20,
)
separator = st.text(alphabet=" \t", min_size=1, max_size=3)


class TestScopeProperties:
    """Property tests for the space-delimited scope form."""

    @given(tokens=st.lists(scope_token, max_size=8))
    @settings(max_examples=100)
    def test_value_parses_back(self, tokens: list[str]) -> None:
        scope = Scope.from_list(tokens)

        assert Scope.parse(scope.value) == scope
        assert str(scope) == scope.value

    @given(tokens=st.lists(scope_token, min_size=1, max_size=8), sep=separator)
    @settings(max_examples=100)
    def test_parse_ignores_extra_whitespace(self, tokens: list[str], sep: str) -> None:
        scope = Scope.parse(f"{sep}{sep.join(tokens)}{sep}")

        assert scope.tokens == tuple(tokens)
        assert scope.value == " ".join(tokens)

    @given(tokens=st.lists(scope_token, min_size=1, max_size=8))
    @settings(max_examples=100)
    def test_contains_every_token(self, tokens: list[str]) -> None:
        scope = Scope.from_list(tokens)

        assert all(token in scope for token in tokens)
