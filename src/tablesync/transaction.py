"""
Transaction handling for multi-statement work on one connection.

Table operations and the synchronizer are not transactional on their own:
outside a transaction every call commits. Wrap calls in `Transaction` to
commit them together or roll them all back.
"""
import logging
from typing import Any

logger = logging.getLogger(__name__)


class Transaction:
    """Context manager for running multiple commands in a transaction.

    Nested transactions on the same connection are not supported.

    Examples
        with Transaction(cn) as tx:
            order_id = auto_insert(tx, order, orders)
            tx.execute('update stock set qty = qty - 1 where sku = :sku', {'sku': sku})
    """

    def __init__(self, cn: Any) -> None:
        if cn.in_transaction:
            raise RuntimeError('Nested transactions are not supported')
        self.cn = cn

    def __enter__(self):
        self.cn.in_transaction = True
        logger.debug(f'Started transaction for connection {id(self.cn)}')
        return self

    def __exit__(self, exc_type: type | None, value: Exception | None, traceback: Any | None) -> None:
        try:
            if exc_type is not None:
                self.cn.rollback()
                logger.warning('Rolling back the current transaction')
            else:
                self.cn.commit()
                logger.debug(f'Committed transaction for connection {id(self.cn)}')
        finally:
            self.cn.in_transaction = False

    @property
    def dialect(self) -> str:
        return self.cn.dialect

    @property
    def database(self) -> str | None:
        return self.cn.database

    def execute(self, sql: str, params: dict[str, Any] | None = None) -> int:
        """Execute SQL within transaction context"""
        return self.cn.execute(sql, params)

    def select(self, sql: str, params: dict[str, Any] | None = None) -> list[dict[str, Any]]:
        return self.cn.select(sql, params)

    def select_row_or_none(self, sql: str, params: dict[str, Any] | None = None) -> Any:
        return self.cn.select_row_or_none(sql, params)

    def select_scalar(self, sql: str, params: dict[str, Any] | None = None) -> Any:
        return self.cn.select_scalar(sql, params)

    def read(self, sql: str, params: dict[str, Any] | None = None, **kwargs: Any) -> Any:
        return self.cn.read(sql, params, **kwargs)

    def get_columns(self, table: str, database: str | None = None) -> list[str]:
        return self.cn.get_columns(table, database)
