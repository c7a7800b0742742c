"""
数据库连接和管理模块
负责 DuckDB 数据库的初始化、连接管理、表结构定义和事务边界

数据库表说明：
- users: 用户（顾客、商家、骑手）
- addresses: 用户收货地址及坐标
- brands / outlets / outlet_brands / menu_items: 商家目录
- orders / order_items: 订单及明细（只改状态，不物理删除）
- logs: 业务审计日志
"""

import logging
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, Generator, List, Optional

import duckdb

from ..config.settings import settings
from .exceptions import BaseApplicationError, DatabaseError, PersistenceError

logger = logging.getLogger(__name__)

# 完整的表结构定义
# 金额统一使用 DECIMAL(10,2)，目录类实体使用字符串主键
SCHEMA_SQL = r"""
CREATE SEQUENCE IF NOT EXISTS users_id_seq;
CREATE TABLE IF NOT EXISTS users (
  id INTEGER DEFAULT nextval('users_id_seq') PRIMARY KEY,
  name TEXT,
  role TEXT CHECK(role IN ('customer','vendor','delivery_agent','admin')) NOT NULL DEFAULT 'customer',
  created_at TIMESTAMP DEFAULT now()
);

CREATE TABLE IF NOT EXISTS addresses (
  id TEXT PRIMARY KEY,
  user_id INTEGER NOT NULL,
  label TEXT,
  latitude DOUBLE NOT NULL,
  longitude DOUBLE NOT NULL,
  is_default BOOLEAN DEFAULT FALSE,
  created_at TIMESTAMP DEFAULT now()
);

CREATE INDEX IF NOT EXISTS idx_addresses_user ON addresses(user_id);

CREATE TABLE IF NOT EXISTS brands (
  id TEXT PRIMARY KEY,
  owner_id INTEGER,
  name TEXT NOT NULL,
  is_active BOOLEAN DEFAULT TRUE,
  created_at TIMESTAMP DEFAULT now()
);

CREATE TABLE IF NOT EXISTS outlets (
  id TEXT PRIMARY KEY,
  owner_id INTEGER,
  name TEXT NOT NULL,
  latitude DOUBLE NOT NULL,
  longitude DOUBLE NOT NULL,
  delivery_radius_km DOUBLE NOT NULL DEFAULT 5.0,
  is_active BOOLEAN DEFAULT TRUE,
  is_delivery_available BOOLEAN DEFAULT TRUE,
  free_delivery_threshold DECIMAL(10,2),  -- 满额免配送费，NULL 表示不设门槛
  created_at TIMESTAMP DEFAULT now()
);

CREATE TABLE IF NOT EXISTS outlet_brands (
  outlet_id TEXT NOT NULL,
  brand_id TEXT NOT NULL,
  is_available BOOLEAN DEFAULT TRUE,
  preparation_time_minutes INTEGER DEFAULT 30,
  minimum_order_amount DECIMAL(10,2) DEFAULT 0,
  delivery_fee DECIMAL(10,2) DEFAULT 0,
  PRIMARY KEY (outlet_id, brand_id)
);

CREATE TABLE IF NOT EXISTS menu_items (
  id TEXT PRIMARY KEY,
  brand_id TEXT NOT NULL,
  name TEXT NOT NULL,
  base_price DECIMAL(10,2) NOT NULL,
  is_available BOOLEAN DEFAULT TRUE,
  created_at TIMESTAMP DEFAULT now()
);

CREATE INDEX IF NOT EXISTS idx_menu_items_brand ON menu_items(brand_id);

CREATE SEQUENCE IF NOT EXISTS orders_id_seq;
CREATE TABLE IF NOT EXISTS orders (
  order_id INTEGER DEFAULT nextval('orders_id_seq') PRIMARY KEY,
  order_number TEXT UNIQUE NOT NULL,
  checkout_batch_id TEXT NOT NULL,
  user_id INTEGER NOT NULL,
  outlet_id TEXT NOT NULL,
  brand_id TEXT NOT NULL,
  address_id TEXT NOT NULL,
  status TEXT CHECK(status IN ('pending','confirmed','preparing','ready_for_pickup',
                               'out_for_delivery','delivered','cancelled','refunded')) NOT NULL,
  payment_method TEXT CHECK(payment_method IN ('cash','card','upi','wallet','netbanking')) NOT NULL,
  subtotal DECIMAL(10,2) NOT NULL,
  delivery_fee DECIMAL(10,2) NOT NULL,
  tax_amount DECIMAL(10,2) NOT NULL,
  total_amount DECIMAL(10,2) NOT NULL,
  distance_km DOUBLE,
  special_instructions TEXT,
  estimated_delivery_time TIMESTAMP,
  actual_delivery_time TIMESTAMP,
  cancellation_reason TEXT,
  cancelled_by INTEGER,
  created_at TIMESTAMP NOT NULL,
  updated_at TIMESTAMP NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_orders_user ON orders(user_id);
CREATE INDEX IF NOT EXISTS idx_orders_outlet ON orders(outlet_id);
CREATE INDEX IF NOT EXISTS idx_orders_batch ON orders(checkout_batch_id);

CREATE SEQUENCE IF NOT EXISTS order_items_id_seq;
CREATE TABLE IF NOT EXISTS order_items (
  id INTEGER DEFAULT nextval('order_items_id_seq') PRIMARY KEY,
  order_id INTEGER NOT NULL,
  line_no INTEGER NOT NULL,
  menu_item_id TEXT NOT NULL,
  quantity INTEGER NOT NULL CHECK(quantity >= 1),
  unit_price DECIMAL(10,2) NOT NULL,
  line_total DECIMAL(10,2) NOT NULL,
  special_instructions TEXT
);

CREATE INDEX IF NOT EXISTS idx_order_items_order ON order_items(order_id);

CREATE SEQUENCE IF NOT EXISTS logs_id_seq;
CREATE TABLE IF NOT EXISTS logs (
  log_id INTEGER DEFAULT nextval('logs_id_seq') PRIMARY KEY,
  user_id INTEGER,  -- 操作涉及的用户
  actor_id INTEGER,  -- 实际执行操作的用户（如商家）
  action TEXT,  -- 操作类型标识
  detail_json JSON,  -- 操作详情的结构化数据
  created_at TIMESTAMP DEFAULT now()
);

CREATE INDEX IF NOT EXISTS idx_logs_user ON logs(user_id);
CREATE INDEX IF NOT EXISTS idx_logs_action ON logs(action);
"""


def rows_to_dicts(cursor) -> List[Dict[str, Any]]:
    """把查询结果按列名转换为字典列表"""
    columns = [col[0] for col in cursor.description]
    return [dict(zip(columns, row)) for row in cursor.fetchall()]


def row_to_dict(cursor) -> Optional[Dict[str, Any]]:
    """取单行结果并转换为字典"""
    row = cursor.fetchone()
    if row is None:
        return None
    columns = [col[0] for col in cursor.description]
    return dict(zip(columns, row))


class DatabaseManager:
    """数据库管理器，封装连接和事务"""

    def __init__(self, db_path: Optional[str] = None):
        self._connection: Optional[duckdb.DuckDBPyConnection] = None
        self._lock = threading.RLock()
        self.db_path = db_path or self._get_db_path_from_settings()

    def _get_db_path_from_settings(self) -> str:
        """从设置中获取数据库路径"""
        db_url = settings.database_url
        if db_url.startswith("duckdb://"):
            return db_url.replace("duckdb://", "")
        return db_url

    @property
    def connection(self) -> duckdb.DuckDBPyConnection:
        """获取数据库连接"""
        if self._connection is None:
            if self.db_path != ":memory:":
                Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
            self._connection = duckdb.connect(self.db_path)
            self._init_schema()
        return self._connection

    def get_connection(self) -> duckdb.DuckDBPyConnection:
        return self.connection

    def _init_schema(self):
        """初始化数据库表结构"""
        try:
            self._connection.execute(SCHEMA_SQL)
        except duckdb.Error as e:
            raise DatabaseError(f"Failed to initialize schema: {e}")

    def init_database(self):
        """初始化数据库"""
        with self._lock:
            self.connection.execute(SCHEMA_SQL)
        logger.info("Database initialized at %s", self.db_path)

    @contextmanager
    def transaction(self) -> Generator[duckdb.DuckDBPyConnection, None, None]:
        """
        数据库事务上下文管理器

        同一进程内的写操作共享一个连接，通过锁串行化；
        任何异常都会回滚。业务异常原样抛出，存储层异常包装为 PersistenceError。
        """
        with self._lock:
            conn = self.connection
            conn.execute("BEGIN TRANSACTION")
            try:
                yield conn
                conn.execute("COMMIT")
            except Exception as e:
                try:
                    conn.execute("ROLLBACK")
                except duckdb.Error:
                    logger.exception("Rollback failed")

                if isinstance(e, BaseApplicationError):
                    raise
                if isinstance(e, duckdb.Error):
                    if "conflict" in str(e).lower():
                        raise PersistenceError("系统繁忙，请稍后重试", {"cause": str(e)}) from e
                    raise PersistenceError(f"数据库操作失败: {e}", {"cause": str(e)}) from e
                raise PersistenceError(f"事务执行失败: {e}", {"cause": str(e)}) from e

    @contextmanager
    def reading(self) -> Generator[duckdb.DuckDBPyConnection, None, None]:
        """只读访问，与事务共用同一把锁"""
        with self._lock:
            yield self.connection

    def execute_query(self, query: str, params: list = None) -> List[Dict[str, Any]]:
        """执行查询并返回字典列表"""
        try:
            with self.reading() as con:
                return rows_to_dicts(con.execute(query, params or []))
        except duckdb.Error as e:
            raise DatabaseError(f"Query execution failed: {e}")

    def execute_one(self, query: str, params: list = None) -> Optional[Dict[str, Any]]:
        """执行查询并返回单条结果"""
        try:
            with self.reading() as con:
                return row_to_dict(con.execute(query, params or []))
        except duckdb.Error as e:
            raise DatabaseError(f"Query execution failed: {e}")

    def close(self):
        with self._lock:
            if self._connection is not None:
                self._connection.close()
                self._connection = None


# 全局数据库管理器实例
db_manager = DatabaseManager()
