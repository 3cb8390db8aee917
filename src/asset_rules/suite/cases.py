"""The fixed truth table of rules cases."""

from datetime import datetime, timezone
from typing import List, Optional

from ..models.core import Asset, Category, Expectation, Operation, RuleCase, Transaction, UserProfile


USER_1 = "user1"
USER_2 = "user2"

GROUPS = ('isolation', 'assets', 'categories', 'transactions')

SUCCEED = Expectation.SUCCEED
FAIL = Expectation.FAIL


def valid_asset(now: datetime, **overrides) -> dict:
    document = Asset(
        name='Test Asset', type='paymentAccount', balance=1000,
        created_at=now, updated_at=now,
    ).to_document()
    document.update(overrides)
    return document


def valid_category(**overrides) -> dict:
    document = Category(
        name='Test Category', description='Test Description', icon='test_icon', is_default=False,
    ).to_document()
    document.update(overrides)
    return document


def valid_transaction(now: datetime, **overrides) -> dict:
    document = Transaction(
        asset_id='asset1', category_id='category1', amount=100,
        description='Test transaction', date=now, created_at=now,
    ).to_document()
    document.update(overrides)
    return document


def build_cases(now: Optional[datetime] = None) -> List[RuleCase]:
    """Return every case, grouped in GROUPS order"""
    now = now or datetime.now(timezone.utc)
    own_asset = f"users/{USER_1}/assets/asset1"
    own_category = f"users/{USER_1}/categories/category1"
    own_transaction = f"users/{USER_1}/transactions/transaction1"

    asset_without_updated_at = valid_asset(now)
    del asset_without_updated_at['updatedAt']

    return [
        # User data isolation
        RuleCase("User can read their own data", 'isolation',
                 USER_1, Operation.GET, f"users/{USER_1}", SUCCEED),
        RuleCase("User cannot read other user data", 'isolation',
                 USER_1, Operation.GET, f"users/{USER_2}", FAIL),
        RuleCase("Unauthenticated user cannot read any data", 'isolation',
                 None, Operation.GET, f"users/{USER_1}", FAIL),
        RuleCase("User can create their own profile", 'isolation',
                 USER_1, Operation.SET, f"users/{USER_1}", SUCCEED,
                 data=UserProfile(USER_1, display_name='Test User', created_at=now).to_document()),

        # Assets
        RuleCase("User can create valid asset", 'assets',
                 USER_1, Operation.SET, own_asset, SUCCEED, data=valid_asset(now)),
        RuleCase("User cannot create asset with invalid type", 'assets',
                 USER_1, Operation.SET, own_asset, FAIL, data=valid_asset(now, type='invalidType')),
        RuleCase("User cannot create asset with negative balance", 'assets',
                 USER_1, Operation.SET, own_asset, FAIL, data=valid_asset(now, balance=-100)),
        RuleCase("User cannot access other user assets", 'assets',
                 USER_1, Operation.GET, f"users/{USER_2}/assets/asset1", FAIL),
        RuleCase("User cannot create asset without updatedAt", 'assets',
                 USER_1, Operation.SET, own_asset, FAIL, data=asset_without_updated_at),
        RuleCase("User cannot write into other user assets", 'assets',
                 USER_1, Operation.SET, f"users/{USER_2}/assets/asset1", FAIL, data=valid_asset(now)),
        RuleCase("Unauthenticated user cannot create asset", 'assets',
                 None, Operation.SET, own_asset, FAIL, data=valid_asset(now)),
        RuleCase("User can update asset balance", 'assets',
                 USER_1, Operation.UPDATE, own_asset, SUCCEED,
                 data={'balance': 2500, 'updatedAt': now},
                 seed={own_asset: valid_asset(now)}),
        RuleCase("User cannot update asset to negative balance", 'assets',
                 USER_1, Operation.UPDATE, own_asset, FAIL,
                 data={'balance': -1, 'updatedAt': now},
                 seed={own_asset: valid_asset(now)}),

        # Categories
        RuleCase("User can create valid category", 'categories',
                 USER_1, Operation.SET, own_category, SUCCEED, data=valid_category()),
        RuleCase("User cannot create category with empty name", 'categories',
                 USER_1, Operation.SET, own_category, FAIL,
                 data={'name': '', 'description': 'Test Description', 'icon': 'test_icon'}),
        RuleCase("User cannot access other user categories", 'categories',
                 USER_1, Operation.GET, f"users/{USER_2}/categories/category1", FAIL),
        RuleCase("User can delete own category", 'categories',
                 USER_1, Operation.DELETE, own_category, SUCCEED,
                 seed={own_category: valid_category()}),

        # Transactions
        RuleCase("User can create valid transaction", 'transactions',
                 USER_1, Operation.SET, own_transaction, SUCCEED, data=valid_transaction(now)),
        RuleCase("User cannot create transaction with zero amount", 'transactions',
                 USER_1, Operation.SET, own_transaction, FAIL, data=valid_transaction(now, amount=0)),
        RuleCase("User cannot create transaction with negative amount", 'transactions',
                 USER_1, Operation.SET, own_transaction, FAIL, data=valid_transaction(now, amount=-50)),
        RuleCase("User cannot access other user transactions", 'transactions',
                 USER_1, Operation.GET, f"users/{USER_2}/transactions/transaction1", FAIL),
        RuleCase("User can add transaction with generated id", 'transactions',
                 USER_1, Operation.ADD, f"users/{USER_1}/transactions", SUCCEED,
                 data=valid_transaction(now)),
        RuleCase("User can list own transactions", 'transactions',
                 USER_1, Operation.LIST, f"users/{USER_1}/transactions", SUCCEED,
                 seed={own_transaction: valid_transaction(now)}),
        RuleCase("User cannot query other user transactions", 'transactions',
                 USER_1, Operation.QUERY, f"users/{USER_2}/transactions", FAIL,
                 seed={f"users/{USER_2}/transactions/transaction1": valid_transaction(now)},
                 query=('assetId', '==', 'asset1')),
    ]


def cases_for_group(group: Optional[str], now: Optional[datetime] = None) -> List[RuleCase]:
    """Cases of one group, or all of them when group is None

    Raises:
        ValueError: If the group is unknown
    """
    cases = build_cases(now)
    if group is None:
        return cases
    if group not in GROUPS:
        raise ValueError(f"Unknown case group '{group}'. Expected one of: {', '.join(GROUPS)}")
    return [case for case in cases if case.group == group]
