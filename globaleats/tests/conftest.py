"""
测试配置文件
提供测试所需的fixtures
"""

from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient

from globaleats.app import create_app
from globaleats.core.database import DatabaseManager
from globaleats.core.security import SecurityManager
from globaleats.models.user import UserRole
from globaleats.services.order_service import OrderService

from .factories import HOME, CatalogSeeder, north_of


@pytest.fixture
def test_db():
    """内存数据库，每个测试独立"""
    db = DatabaseManager(":memory:")
    yield db
    db.close()


@pytest.fixture
def seed(test_db):
    return CatalogSeeder(test_db)


@pytest.fixture
def kitchen(seed):
    """
    标准场景：
    - burger 品牌门店在顾客正北 3km，配送费 25
    - pizza 品牌门店在顾客正北 2km，配送费 30，满 300 免配送费
    """
    vendor = seed.user("商家", UserRole.VENDOR)
    customer = seed.user("顾客")
    rider = seed.user("骑手", UserRole.DELIVERY_AGENT)
    address_id = seed.address(customer.user_id, HOME)

    seed.brand("burger", vendor.user_id)
    seed.outlet("o-burger", north_of(HOME, 3), vendor.user_id)
    seed.link("o-burger", "burger", delivery_fee="25.00", prep_minutes=20)
    seed.menu_item("m-burger", "burger", "50.00")

    seed.brand("pizza", vendor.user_id)
    seed.outlet("o-pizza", north_of(HOME, 2), vendor.user_id, free_delivery_threshold="300.00")
    seed.link("o-pizza", "pizza", delivery_fee="30.00", prep_minutes=25)
    seed.menu_item("m-pizza", "pizza", "120.00")

    return SimpleNamespace(vendor=vendor, customer=customer, rider=rider,
                           address_id=address_id)


@pytest.fixture
def service(test_db):
    return OrderService(test_db)


@pytest.fixture
def app_instance(test_db):
    """测试应用，注入内存数据库"""
    return create_app(test_db)


@pytest.fixture
def client(app_instance):
    """测试客户端（不触发 lifespan）"""
    return TestClient(app_instance)


@pytest.fixture
def token_for():
    """为调用者签发 Bearer 请求头"""
    security = SecurityManager()

    def _headers(actor):
        token = security.create_jwt_token(actor.user_id, actor.role)
        return {"Authorization": f"Bearer {token}"}

    return _headers
