"""
Tests for formdesk_core.field_registry — building field definitions from
declarative descriptors.
"""

import pytest

from formdesk_core import ConfigurationError, ControlType, build_registry, describe_registry


def _text(field, **opts):
    return {'control': {'text': dict(field=field, **opts)}}


# ═══════════════════════════════════════════════════════════════════════
# Building
# ═══════════════════════════════════════════════════════════════════════

def test_build_registry_keeps_descriptor_order():
    """Registry keys follow descriptor order."""
    registry = build_registry([
        _text('name'),
        {'control': {'boolean': {'field': 'locked'}}},
        {'control': {'date': {'field': 'expiration'}}},
    ])
    assert list(registry) == ['name', 'locked', 'expiration']
    assert registry['locked'].control_type == ControlType.BOOLEAN
    assert registry['expiration'].control_type == ControlType.DATE


def test_grid_only_descriptor_is_skipped():
    """Descriptors without a control entry only drive the grid."""
    registry = build_registry([
        {'grid': {'field': 'created_at', 'header': 'Created'}},
        _text('name'),
    ])
    assert list(registry) == ['name']


def test_label_defaults_to_title_cased_name():
    registry = build_registry([_text('full_name')])
    assert registry['full_name'].label == 'Full Name'


def test_flags_and_display_options():
    """Engine keys become attributes, everything else lands in options."""
    registry = build_registry([
        _text('email', label='Email', required=True, skip_on_submit=True,
              disabled=True, helper_text='The address.'),
    ])
    fdef = registry['email']
    assert fdef.required is True
    assert fdef.skip_on_submit is True
    assert fdef.options == {'disabled': True, 'helper_text': 'The address.'}


def test_lookup_single_and_multi():
    registry = build_registry([
        {'control': {'lookup': {'field': 'owner'}}},
        {'control': {'lookup': {'field': 'roles', 'multiple': True,
                                'choices': [{'id': 1, 'label': 'One'}]}}},
    ])
    assert registry['owner'].control_type == ControlType.LOOKUP_SINGLE
    assert registry['roles'].control_type == ControlType.LOOKUP_MULTI
    assert registry['roles'].choices == ({'id': 1, 'label': 'One'},)
    assert registry['roles'].control_type.is_lookup


def test_country_is_lookup_with_countries_source():
    registry = build_registry([{'control': {'country': {'field': 'name'}}}])
    fdef = registry['name']
    assert fdef.control_type == ControlType.LOOKUP_SINGLE
    assert fdef.source == 'countries'


# ═══════════════════════════════════════════════════════════════════════
# Configuration errors
# ═══════════════════════════════════════════════════════════════════════

def test_unknown_control_type():
    with pytest.raises(ConfigurationError, match="Unknown control type"):
        build_registry([{'control': {'slider': {'field': 'volume'}}}])


def test_empty_control_entry():
    with pytest.raises(ConfigurationError, match="no control type"):
        build_registry([{'control': {}}])


def test_more_than_one_control_type():
    with pytest.raises(ConfigurationError, match="more than one control type"):
        build_registry([{'control': {'text': {'field': 'a'}, 'date': {'field': 'a'}}}])


def test_missing_field_name():
    with pytest.raises(ConfigurationError, match="missing its 'field' name"):
        build_registry([{'control': {'text': {'label': 'Name'}}}])


def test_duplicate_field():
    with pytest.raises(ConfigurationError, match="Duplicate field: name"):
        build_registry([_text('name'), _text('name')])


def test_choices_require_lookup():
    with pytest.raises(ConfigurationError, match="choices require a lookup"):
        build_registry([_text('name', choices=[{'id': 1}])])


def test_validator_must_be_callable():
    with pytest.raises(ConfigurationError, match="validator must be callable"):
        build_registry([_text('name', validator='not callable')])


def test_descriptor_must_be_dict():
    with pytest.raises(ConfigurationError, match="must be a dict"):
        build_registry(['name'])


# ═══════════════════════════════════════════════════════════════════════
# Describe
# ═══════════════════════════════════════════════════════════════════════

def test_describe_registry_is_json_friendly():
    """Callables are left out of the description."""
    registry = build_registry([
        _text('name', required=True, validator=lambda ctx: None, helper_text='Hi'),
    ])
    described = describe_registry(registry)
    assert described['name'] == {
        'label': 'Name',
        'control_type': 'text',
        'required': True,
        'skip_on_submit': False,
        'choices': None,
        'source': None,
        'options': {'helper_text': 'Hi'},
    }


def test_entity_metadata_builds(account_registry, token_registry, country_registry):
    """Every shipped entity description compiles."""
    assert account_registry['roles'].control_type == ControlType.LOOKUP_MULTI
    assert token_registry['name'].required
    assert country_registry['name'].source == 'countries'
