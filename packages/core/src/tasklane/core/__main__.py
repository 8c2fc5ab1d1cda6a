"""CLI 入口模块 -- python -m tasklane.core <command>

支持的命令：
  init-db  在配置的数据库路径上创建表和索引（可重复执行）
"""

import asyncio
import sys

from .config import load_store_config


def main(argv: list[str] | None = None) -> None:
    """CLI 主入口"""
    args = sys.argv[1:] if argv is None else argv
    if not args:
        print("用法: python -m tasklane.core <command>")
        print("命令:")
        print("  init-db  创建/升级数据库表结构")
        sys.exit(1)

    command = args[0]

    if command == "init-db":
        asyncio.run(init_database())
    else:
        print(f"未知命令: {command}")
        print("可用命令: init-db")
        sys.exit(1)


async def init_database() -> None:
    """执行数据库初始化"""
    from .store import create_store_group
    from .store.sqlite_init import verify_wal_mode

    config = load_store_config()
    print(f"数据库路径: {config.db_path}")

    store_group = await create_store_group(config.db_path, config.busy_timeout_ms)
    try:
        wal = await verify_wal_mode(store_group.db.conn)
        print(f"初始化完成，WAL 模式: {'on' if wal else 'off'}")
    finally:
        await store_group.close()


if __name__ == "__main__":
    main()
