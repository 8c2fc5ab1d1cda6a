"""事务执行器 -- Database 连接句柄 + Transaction 原子作用域

Database 持有唯一的 aiosqlite 连接（autocommit 模式，isolation_level=None），
事务边界全部显式控制：BEGIN IMMEDIATE / COMMIT / ROLLBACK。

- 同一连接上的事务由 asyncio.Lock 串行化，避免不同请求的语句混入同一事务；
- 作用域内任何异常（包括取消）都会回滚，不存在部分提交；
- 当前上下文已有打开的事务时再次开启事务会立即失败（NestedTransactionError），
  不做扁平化合并。
"""

import asyncio
from collections.abc import AsyncIterator, Iterable, Sequence
from contextlib import asynccontextmanager
from contextvars import ContextVar
from typing import Any

import aiosqlite

from ..exceptions import NestedTransactionError, TransactionClosedError

_current_transaction: ContextVar["Transaction | None"] = ContextVar(
    "tasklane_current_transaction", default=None
)


class Transaction:
    """事务句柄 -- 仅在 Database.transaction() 作用域内有效"""

    def __init__(self, conn: aiosqlite.Connection) -> None:
        self._conn = conn
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def _ensure_open(self) -> None:
        if self._closed:
            raise TransactionClosedError("transaction scope already closed")

    async def execute(self, sql: str, params: Sequence[Any] = ()) -> int:
        """执行写语句，返回受影响行数"""
        self._ensure_open()
        cursor = await self._conn.execute(sql, params)
        try:
            return cursor.rowcount
        finally:
            await cursor.close()

    async def fetch_one(
        self, sql: str, params: Sequence[Any] = ()
    ) -> aiosqlite.Row | None:
        """执行语句并返回第一行（支持 INSERT/UPDATE ... RETURNING）"""
        self._ensure_open()
        cursor = await self._conn.execute(sql, params)
        try:
            # RETURNING 语句需要取完结果，语句才算执行完毕
            rows = await cursor.fetchall()
        finally:
            await cursor.close()
        return rows[0] if rows else None

    async def fetch_all(
        self, sql: str, params: Sequence[Any] = ()
    ) -> Iterable[aiosqlite.Row]:
        """执行查询并返回所有行"""
        self._ensure_open()
        cursor = await self._conn.execute(sql, params)
        try:
            return await cursor.fetchall()
        finally:
            await cursor.close()


class Database:
    """数据库句柄 -- 显式创建、显式关闭，注入到每个 Store"""

    def __init__(self, conn: aiosqlite.Connection) -> None:
        self.conn = conn
        self._lock = asyncio.Lock()

    @classmethod
    async def connect(cls, db_path: str) -> "Database":
        """打开 autocommit 模式的连接（事务边界由 transaction() 控制）"""
        conn = await aiosqlite.connect(db_path, isolation_level=None)
        conn.row_factory = aiosqlite.Row
        return cls(conn)

    async def close(self) -> None:
        await self.conn.close()

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[Transaction]:
        """开启原子作用域：正常退出提交，异常退出回滚

        Raises:
            NestedTransactionError: 当前上下文已处于事务中
        """
        if _current_transaction.get() is not None:
            raise NestedTransactionError(
                "a transaction is already open in this context"
            )

        async with self._lock:
            tx = Transaction(self.conn)
            token = _current_transaction.set(tx)
            try:
                await self.conn.execute("BEGIN IMMEDIATE")
                try:
                    yield tx
                    await self.conn.execute("COMMIT")
                except BaseException:
                    await self._rollback()
                    raise
            finally:
                tx._closed = True
                _current_transaction.reset(token)

    async def _rollback(self) -> None:
        if self.conn.in_transaction:
            await self.conn.execute("ROLLBACK")

    async def fetch_one(
        self, sql: str, params: Sequence[Any] = ()
    ) -> aiosqlite.Row | None:
        """在独立的短事务中执行单条读取"""
        async with self.transaction() as tx:
            return await tx.fetch_one(sql, params)

    async def fetch_all(
        self, sql: str, params: Sequence[Any] = ()
    ) -> Iterable[aiosqlite.Row]:
        """在独立的短事务中执行查询"""
        async with self.transaction() as tx:
            return await tx.fetch_all(sql, params)

    async def execute(self, sql: str, params: Sequence[Any] = ()) -> int:
        """在独立的短事务中执行写语句"""
        async with self.transaction() as tx:
            return await tx.execute(sql, params)
