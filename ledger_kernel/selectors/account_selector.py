"""
Module: ledger_kernel.selectors.account_selector
Responsibility: Build the explicit ``ChartOfAccounts`` handle from persisted
    accounts.
Architecture position: Kernel > Selectors.
"""

from sqlalchemy import select

from ledger_kernel.domain.taxonomy import AccountInfo, ChartOfAccounts
from ledger_kernel.models.account import Account
from ledger_kernel.selectors.base import BaseSelector


class AccountSelector(BaseSelector[Account]):
    """Read-only access to the chart of accounts."""

    def load_chart(self, include_inactive: bool = True) -> ChartOfAccounts:
        """
        Snapshot every account as a ``ChartOfAccounts``.

        Inactive accounts are included by default: historical lines still
        reference them and totals must reconcile.
        """
        query = select(Account).order_by(Account.number)
        if not include_inactive:
            query = query.where(Account.is_active.is_(True))
        return ChartOfAccounts(
            acct.to_info() for acct in self.session.execute(query).scalars()
        )

    def find_by_number(self, number: str) -> AccountInfo | None:
        acct = self.session.execute(
            select(Account).where(Account.number == number)
        ).scalar_one_or_none()
        return acct.to_info() if acct is not None else None
