"""
Tests for Mocku mock rules and RuleStore.

Tests rule parsing, directory loading, reload and match precedence.
"""

import json

import pytest

from mocku.mock.rules import MockRule, RuleError, RuleSet, RuleStore


def write_rule(directory, name, data):
    """Write a JSON rule file."""
    path = directory / name
    path.write_text(json.dumps(data))
    return path


@pytest.fixture
def rules_dir(tmp_path):
    """Rules directory with exact, parameterized, list and invalid files."""
    write_rule(tmp_path, '01-user.json', {
        'path': '/api/users/{id}',
        'method': 'GET',
        'responseBody': {'id': '{{toNumber(request.path.id)}}'}
    })
    write_rule(tmp_path, '02-me.json', {
        'path': '/api/users/me',
        'responseBody': {'me': True}
    })
    write_rule(tmp_path, '03-orders.json', {'mocks': [
        {'path': '/api/orders', 'method': 'post', 'statusCode': 201},
        {'path': '/api/orders/{id', 'method': 'GET'}
    ]})
    (tmp_path / '04-broken.json').write_text('{not json')
    (tmp_path / 'notes.txt').write_text('ignored')
    return tmp_path


class TestMockRule:
    """Test MockRule.from_dict."""

    def test_defaults(self):
        """Test defaults for optional fields."""
        rule = MockRule.from_dict({'path': '/ping'})

        assert rule.method == 'GET'
        assert rule.status_code == 200
        assert rule.delay_ms == 0
        assert dict(rule.response_headers) == {}
        assert rule.response_body is None
        assert rule.content_type is None

    def test_keys_case_insensitive(self):
        """Test camelCase keys match in any case."""
        rule = MockRule.from_dict({
            'Path': '/users',
            'METHOD': 'post',
            'statuscode': 201,
            'DelayMs': 50,
            'ResponseHeaders': {'X-Count': 3},
            'contentType': 'text/plain',
            'responseBody': 'ok'
        })

        assert rule.method == 'POST'
        assert rule.status_code == 201
        assert rule.delay_ms == 50
        assert dict(rule.response_headers) == {'X-Count': '3'}
        assert rule.content_type == 'text/plain'
        assert rule.response_body == 'ok'

    def test_negative_delay_clamped(self):
        assert MockRule.from_dict({'path': '/a', 'delayMs': -10}).delay_ms == 0

    def test_missing_path(self):
        with pytest.raises(RuleError):
            MockRule.from_dict({'method': 'GET'})

    def test_invalid_path(self):
        """Test pattern errors surface as rule errors."""
        with pytest.raises(RuleError, match='invalid path'):
            MockRule.from_dict({'path': '/users/{id'})

    def test_bad_status(self):
        with pytest.raises(RuleError):
            MockRule.from_dict({'path': '/a', 'statusCode': 'two hundred'})

    def test_boolean_status_rejected(self):
        with pytest.raises(RuleError):
            MockRule.from_dict({'path': '/a', 'statusCode': True})

    def test_bad_headers(self):
        with pytest.raises(RuleError):
            MockRule.from_dict({'path': '/a', 'responseHeaders': ['X-A']})

    def test_to_dict_round_trip(self):
        """Test to_dict uses the definition layout."""
        data = {
            'path': '/a/{id}',
            'method': 'PUT',
            'statusCode': 202,
            'contentType': None,
            'delayMs': 0,
            'responseHeaders': {'X-A': '1'},
            'responseBody': {'ok': True}
        }

        assert MockRule.from_dict(data).to_dict() == data

    def test_summary(self):
        summary = MockRule.from_dict({'path': '/files/{*rest}'}, source='files.json').summary()

        assert summary['kind'] == 'catch_all'
        assert summary['source'] == 'files.json'


class TestRuleSet:
    """Test rule ranking and lookup."""

    def test_literal_beats_parameterized(self):
        """Test an exact rule wins even when registered later."""
        rules = RuleSet(rules=(
            MockRule.from_dict({'path': '/users/{id}'}),
            MockRule.from_dict({'path': '/users/me'}),
        ))

        match = rules.find_match('GET', '/users/me')

        assert match.rule.path_spec == '/users/me'
        assert match.params == {}

    def test_first_registered_wins_ties(self):
        rules = RuleSet(rules=(
            MockRule.from_dict({'path': '/a/{x}', 'statusCode': 201}),
            MockRule.from_dict({'path': '/{y}/b', 'statusCode': 202}),
        ))

        assert rules.find_match('GET', '/a/b').rule.status_code == 201

    def test_method_must_match(self):
        rules = RuleSet(rules=(MockRule.from_dict({'path': '/a', 'method': 'POST'}),))

        assert rules.find_match('GET', '/a') is None
        assert rules.find_match('post', '/a') is not None

    def test_for_method_ranked(self):
        """Test for_method orders by precedence."""
        rules = RuleSet(rules=(
            MockRule.from_dict({'path': '/{*rest}'}),
            MockRule.from_dict({'path': '/x/{id}'}),
            MockRule.from_dict({'path': '/x/y'}),
        ))

        assert [r.path_spec for r in rules.for_method('GET')] == ['/x/y', '/x/{id}', '/{*rest}']

    def test_with_rule_is_new_snapshot(self):
        """Test with_rule leaves the original untouched."""
        original = RuleSet()
        updated = original.with_rule(MockRule.from_dict({'path': '/a'}))

        assert len(original) == 0
        assert len(updated) == 1


class TestRuleStore:
    """Test directory loading."""

    def test_load_directory(self, rules_dir):
        """Test valid rules load and invalid ones are recorded."""
        snapshot = RuleStore(str(rules_dir)).snapshot()

        assert [r.path_spec for r in snapshot.rules] == ['/api/users/{id}', '/api/users/me', '/api/orders']
        assert {entry.source for entry in snapshot.invalid} == {'03-orders.json#1', '04-broken.json'}

    def test_sources(self, rules_dir):
        snapshot = RuleStore(str(rules_dir)).snapshot()

        assert snapshot.rules[0].source == '01-user.json'
        assert snapshot.rules[2].source == '03-orders.json#0'

    def test_precedence_across_files(self, rules_dir):
        """Test the exact rule wins over the earlier parameterized one."""
        snapshot = RuleStore(str(rules_dir)).snapshot()

        assert snapshot.find_match('GET', '/api/users/me').rule.path_spec == '/api/users/me'
        assert snapshot.find_match('GET', '/api/users/5').params == {'id': '5'}

    def test_yaml_rules(self, tmp_path):
        """Test YAML rule files load."""
        (tmp_path / 'ping.yaml').write_text(
            "path: /ping\n"
            "statusCode: 204\n"
        )

        snapshot = RuleStore(str(tmp_path)).snapshot()

        assert snapshot.find_match('GET', '/ping').rule.status_code == 204

    def test_missing_directory(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            RuleStore(str(tmp_path / 'nope'))

    def test_reload_swaps_snapshot(self, rules_dir):
        """Test reload publishes a new snapshot and old ones stay intact."""
        store = RuleStore(str(rules_dir))
        before = store.snapshot()

        write_rule(rules_dir, '05-new.json', {'path': '/new'})
        after = store.reload()

        assert store.snapshot() is after
        assert after.find_match('GET', '/new') is not None
        assert before.find_match('GET', '/new') is None

    def test_register(self):
        """Test runtime registration on an in-memory store."""
        store = RuleStore()

        rule = store.register({'path': '/runtime', 'statusCode': 418})

        assert rule.source == 'runtime'
        assert store.snapshot().find_match('GET', '/runtime').rule.status_code == 418

    def test_registered_rules_survive_reload(self, rules_dir):
        """Test reload keeps runtime rules after the file rules."""
        store = RuleStore(str(rules_dir))
        store.register({'path': '/runtime'})

        write_rule(rules_dir, '05-new.json', {'path': '/new'})
        snapshot = store.reload()

        assert snapshot.find_match('GET', '/runtime') is not None
        assert snapshot.find_match('GET', '/new') is not None
        assert snapshot.rules[-1].path_spec == '/runtime'

    def test_register_invalid(self):
        store = RuleStore()

        with pytest.raises(RuleError):
            store.register({'path': '/bad/{'})
        assert len(store.snapshot()) == 0

    def test_load_false(self, rules_dir):
        """Test deferred loading."""
        store = RuleStore(str(rules_dir), load=False)

        assert len(store.snapshot()) == 0
        assert len(store.reload()) == 3
