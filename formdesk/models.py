"""
Entity metadata — field descriptors, REST endpoints, query keys and access
rules for the entities managed by the dashboard.

Each descriptor carries an optional ``grid`` entry (list display) and a
``control`` entry compiled by formdesk_core.build_registry into the dialog
form. Record adapters turn backend JSON into form values.
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import Any, Callable

from formdesk_core import (
    build_registry, date_not_after, date_not_before, describe_registry,
    parse_date, verify_email,
)

# REST API endpoints
URL_ACCOUNTS = '/v1/accounts'
URL_ACCOUNTS_ME = URL_ACCOUNTS + '/me'
URL_ME_ACCESS_TOKENS = URL_ACCOUNTS_ME + '/access-tokens'
URL_ME_SCOPES = URL_ACCOUNTS_ME + '/scopes'
URL_COUNTRIES = '/v1/countries'
URL_COUNTRIES_LOOKUP = URL_COUNTRIES + '/lookup'

# Query keys
QUERY_KEY_ME = ('me',)
QUERY_KEY_ACCOUNTS = ('accounts',)
QUERY_KEY_ACCESS_TOKENS = QUERY_KEY_ME + ('access-tokens',)
QUERY_KEY_SCOPES = QUERY_KEY_ME + ('scopes',)
QUERY_KEY_COUNTRIES = ('countries',)
QUERY_KEY_COUNTRIES_LOOKUP = QUERY_KEY_COUNTRIES + ('lookup',)


class AccountRole(IntEnum):
    AUDITOR = 100
    ADMIN = 200
    API = 300


class ScopeEnum(str, Enum):
    PAGE_ACCOUNT = 'e4f9c2cd-3500-4a5c-be7a-673a24e9f873'
    PAGE_ACCESS_TOKEN = '5c4da514-4545-4628-8b10-1bcebf6289a1'
    DATA_GRID_ACCOUNT = 'a822f003-e4d4-49a0-afac-25e4cd85f55d'
    DATA_GRID_ACCESS_TOKEN = 'f1bbfa7f-44cc-4ba7-a296-05a16a5d0eec'


# ---------------------------------------------------------------------------
# Access rules
# ---------------------------------------------------------------------------

def _roles(roles) -> set:
    result = set()
    for role in roles or ():
        try:
            result.add(AccountRole(role))
        except ValueError:
            continue
    return result


def has_read_access(roles, scope=None) -> bool:
    """Admins read everything; auditors everything but access tokens."""
    if scope is None:
        return False
    roles = _roles(roles)
    return (AccountRole.ADMIN in roles
            or (AccountRole.AUDITOR in roles and scope != ScopeEnum.PAGE_ACCESS_TOKEN))


def _has_modify_access(roles, scope) -> bool:
    if scope is None:
        return False
    roles = _roles(roles)
    return (AccountRole.ADMIN in roles
            or (AccountRole.API in roles and scope == ScopeEnum.PAGE_ACCESS_TOKEN))


def has_create_access(roles, scope=None) -> bool:
    return _has_modify_access(roles, scope)


def has_write_access(roles, scope=None) -> bool:
    return _has_modify_access(roles, scope)


def has_delete_access(roles, scope=None) -> bool:
    return _has_modify_access(roles, scope)


# ---------------------------------------------------------------------------
# Lookup options and value transforms
# ---------------------------------------------------------------------------

def enum_options(enum_cls) -> list[dict]:
    """Lookup options ({id, label}) for every member of an enum."""
    return [{'id': member.value, 'label': member.name.replace('_', ' ').title()}
            for member in enum_cls]


def enum_option(enum_cls, value) -> dict | None:
    for option in enum_options(enum_cls):
        if option['id'] == value:
            return option
    return None


def final_date(value):
    """Send dates as YYYY-MM-DD."""
    parsed = parse_date(value)
    return parsed.isoformat() if parsed else None


def final_lookup_ids(value):
    """Send lookup selections as the option id, or a list of ids."""
    if value is None:
        return None
    if isinstance(value, (list, tuple)):
        return [option['id'] for option in value]
    return value['id']


# ---------------------------------------------------------------------------
# Field descriptors
# ---------------------------------------------------------------------------

def _id_descriptor():
    return {
        'grid': {'field': 'id', 'header': 'ID', 'visible': False},
        'control': {'text': {'field': 'id', 'label': 'ID', 'disabled': True,
                             'skip_on_submit': True,
                             'helper_text': 'The unique identifier of the record.'}},
    }


ACCOUNT_FIELDS = [
    _id_descriptor(),
    {
        'grid': {'field': 'name', 'header': 'Name'},
        'control': {'text': {'field': 'name', 'label': 'Name', 'disabled': True,
                             'skip_on_submit': True,
                             'helper_text': 'The name of the account.'}},
    },
    {
        'grid': {'field': 'email', 'header': 'Email'},
        'control': {'text': {'field': 'email', 'label': 'Email', 'disabled': True,
                             'skip_on_submit': True, 'validator': verify_email,
                             'helper_text': "The user's email address."}},
    },
    {
        'grid': {'field': 'locked', 'header': 'Locked'},
        'control': {'boolean': {'field': 'locked', 'label': 'Locked'}},
    },
    {
        'grid': {'field': 'roles', 'header': 'Roles'},
        'control': {'lookup': {'field': 'roles', 'label': 'Roles', 'multiple': True,
                               'choices': enum_options(AccountRole),
                               'final_value': final_lookup_ids,
                               'helper_text': "The user's role memberships."}},
    },
    {
        'grid': {'field': 'last_login', 'header': 'Last Login'},
        'control': {'date': {'field': 'last_login', 'label': 'Last Login',
                             'disabled': True, 'skip_on_submit': True}},
    },
    {
        'grid': {'field': 'active_from', 'header': 'Active From'},
        'control': {'date': {'field': 'active_from', 'label': 'Active From',
                             'final_value': final_date,
                             'validator': date_not_after('active_until'),
                             'helper_text': 'The date from which onward the account can be used.'}},
    },
    {
        'grid': {'field': 'active_until', 'header': 'Expires'},
        'control': {'date': {'field': 'active_until', 'label': 'Active Until',
                             'final_value': final_date,
                             'validator': date_not_before('active_from'),
                             'helper_text': 'The date until which the account can be used.'}},
    },
]

ACCESS_TOKEN_FIELDS = [
    _id_descriptor(),
    {
        'grid': {'field': 'name', 'header': 'Name'},
        'control': {'text': {'field': 'name', 'label': 'Name', 'required': True,
                             'helper_text': 'The name associated with the token.'}},
    },
    {
        'control': {'lookup': {'field': 'scopes', 'label': 'Scopes', 'multiple': True,
                               'source': 'scopes', 'final_value': final_lookup_ids}},
    },
    {
        'grid': {'field': 'expiration', 'header': 'Expiration'},
        'control': {'date': {'field': 'expiration', 'label': 'Expiration',
                             'required': True, 'final_value': final_date}},
    },
    {
        'grid': {'field': 'revoked', 'header': 'Revoked'},
        'control': {'boolean': {'field': 'revoked', 'label': 'Revoked'}},
    },
    {
        'control': {'text': {'field': 'value', 'label': 'Access Token',
                             'skip_on_submit': True, 'secret': True}},
    },
    {'grid': {'field': 'created_at', 'header': 'Created'}},
]

COUNTRY_FIELDS = [
    _id_descriptor(),
    {
        'grid': {'field': 'name', 'header': 'Name'},
        'control': {'country': {'field': 'name', 'label': 'Name',
                                'skip_on_submit': True}},
    },
    {
        'grid': {'field': 'code', 'header': 'Code'},
        'control': {'text': {'field': 'code', 'label': 'Code', 'disabled': True,
                             'skip_on_submit': True}},
    },
    {
        'grid': {'field': 'phone', 'header': 'Phone'},
        'control': {'text': {'field': 'phone', 'label': 'Phone', 'disabled': True,
                             'skip_on_submit': True}},
    },
    {
        'grid': {'field': 'default', 'header': 'Default'},
        'control': {'boolean': {'field': 'default', 'label': 'Default',
                                'helper_text': 'Default countries are displayed first in lookups.'}},
    },
    {
        'grid': {'field': 'display', 'header': 'Display'},
        'control': {'boolean': {'field': 'display', 'label': 'Display',
                                'helper_text': 'Whether the country is displayed in lookups.'}},
    },
]


# ---------------------------------------------------------------------------
# Record adapters
# ---------------------------------------------------------------------------

def _text(value) -> str:
    return '' if value is None else str(value)


def account_values(data: dict) -> dict:
    return {
        'id': _text(data.get('id')),
        'name': _text(data.get('full_name')),
        'email': _text(data.get('email')),
        'locked': bool(data.get('locked', False)),
        'roles': [option for option in (enum_option(AccountRole, r)
                                        for r in data.get('roles') or [])
                  if option is not None],
        'last_login': data.get('last_login'),
        'active_from': data.get('active_from'),
        'active_until': data.get('active_until'),
    }


def access_token_values(data: dict) -> dict:
    """Missing keys are left out so they keep their current form value."""
    values = {key: _text(data[key]) for key in ('id', 'name', 'value') if key in data}
    if 'expiration' in data:
        values['expiration'] = data['expiration']
    if 'revoked' in data:
        values['revoked'] = bool(data['revoked'])
    scopes = data.get('scopes', data.get('scope'))
    if scopes is not None:
        values['scopes'] = [s if isinstance(s, Mapping) else {'id': s, 'label': str(s)}
                            for s in scopes]
    return values


def country_values(data: dict) -> dict:
    return {
        'id': _text(data.get('id')),
        'name': {'id': data.get('id'), 'label': data.get('name'), 'code': data.get('code')},
        'code': _text(data.get('code')),
        'phone': _text(data.get('phone')),
        'default': bool(data.get('default', False)),
        'display': bool(data.get('display', False)),
    }


# ---------------------------------------------------------------------------
# Entity table
# ---------------------------------------------------------------------------

@dataclass
class EntityDef:
    name: str
    title: str
    url: str
    query_key: tuple
    fields: list
    to_values: Callable[[dict], dict]
    scope: ScopeEnum | None = None
    operations: set = field(default_factory=lambda: {'create', 'read', 'update', 'delete'})
    invalidates: tuple = ()         # extra query keys refreshed after a mutation

    def registry(self):
        return build_registry(self.fields)


ENTITIES: dict[str, EntityDef] = {
    'accounts': EntityDef(
        name='accounts',
        title='Accounts',
        url=URL_ACCOUNTS,
        query_key=QUERY_KEY_ACCOUNTS,
        fields=ACCOUNT_FIELDS,
        to_values=account_values,
        scope=ScopeEnum.PAGE_ACCOUNT,
        operations={'read', 'update', 'delete'},
        invalidates=(QUERY_KEY_ME,),
    ),
    'access-tokens': EntityDef(
        name='access-tokens',
        title='Access Tokens',
        url=URL_ME_ACCESS_TOKENS,
        query_key=QUERY_KEY_ACCESS_TOKENS,
        fields=ACCESS_TOKEN_FIELDS,
        to_values=access_token_values,
        scope=ScopeEnum.PAGE_ACCESS_TOKEN,
    ),
    'countries': EntityDef(
        name='countries',
        title='Countries',
        url=URL_COUNTRIES,
        query_key=QUERY_KEY_COUNTRIES,
        fields=COUNTRY_FIELDS,
        to_values=country_values,
        operations={'read', 'update'},
    ),
}

# Data sources of lookup controls: source name -> (URL, query key)
LOOKUP_SOURCES: dict[str, tuple[str, tuple]] = {
    'countries': (URL_COUNTRIES_LOOKUP, QUERY_KEY_COUNTRIES_LOOKUP),
    'scopes': (URL_ME_SCOPES, QUERY_KEY_SCOPES),
}


def get_entity(name: str) -> EntityDef | None:
    return ENTITIES.get(name)


def describe_entity(entity: EntityDef) -> dict[str, Any]:
    return {
        'title': entity.title,
        'url': entity.url,
        'scope': entity.scope.value if entity.scope else None,
        'operations': sorted(entity.operations),
        'grid': [d['grid'] for d in entity.fields if 'grid' in d],
        'fields': describe_registry(entity.registry()),
    }
