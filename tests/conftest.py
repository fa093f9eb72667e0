import asyncio
import json
import os
from types import SimpleNamespace

import anthropic
import pytest


@pytest.fixture(scope="session", autouse=True)
def set_test_env():
    os.environ["API_KEY"] = "test-key"
    os.environ["SECRET_KEY"] = "test-secret-key-for-testing"
    os.environ.pop("ANTHROPIC_API_KEY", None)
    os.environ.pop("IMAGE_RULES_PATH", None)
    os.environ.pop("PLANNER_TIMEOUT_MS", None)


DISHES = [
    {"id": "d1", "name": "清蒸鲈鱼", "description": "鲜嫩清淡", "tags": ["高蛋白", "清淡"], "calories": "250大卡"},
    {"id": "d2", "name": "西红柿炒鸡蛋", "description": "酸甜开胃，营养丰富", "tags": ["快手菜"], "calories": "300大卡"},
    {"id": "d3", "name": "白灼虾", "description": "原汁原味", "tags": ["高蛋白", "低脂"], "calories": "200大卡"},
    {"id": "d4", "name": "黑椒牛柳", "description": "香嫩多汁", "tags": ["高蛋白"], "calories": "350大卡"},
    {"id": "d5", "name": "宫保鸡丁", "description": "微辣下饭", "tags": ["川味", "辣"], "calories": "380大卡"},
    {"id": "d6", "name": "麻婆豆腐", "description": "麻辣鲜香", "tags": ["川味"], "calories": "280大卡"},
    {"id": "d7", "name": "冬瓜排骨汤", "description": "清润滋补", "tags": ["汤"], "calories": "260大卡"},
    {"id": "d8", "name": "凉拌黄瓜", "description": "爽脆解腻", "tags": ["凉拌", "低脂"], "calories": "80大卡"},
    {"id": "d9", "name": "蒜蓉西兰花", "description": "清脆爽口", "tags": ["清淡"], "calories": "120大卡"},
    {"id": "d10", "name": "酸辣土豆丝", "description": "酸辣爽口", "tags": ["快手菜"], "calories": "180大卡"},
    {"id": "d11", "name": "啤酒鸭", "description": "浓郁入味", "tags": ["家常"], "calories": "420大卡"},
    {"id": "d12", "name": "清炒时蔬", "description": "健康低卡", "tags": ["低脂"], "calories": "100大卡"},
]

PLAN = [
    {"day": "周一", "mainDish": "清蒸鲈鱼", "sideDish": "拍黄瓜", "reason": "高蛋白低脂"},
    {"day": "周二", "mainDish": "白灼虾", "sideDish": "清炒西兰花", "reason": "清淡少油"},
    {"day": "周三", "mainDish": "清蒸鲈鱼", "sideDish": "凉拌菠菜", "reason": "鱼肉易消化"},
    {"day": "周四", "mainDish": "白灼虾", "sideDish": "蒜蓉生菜", "reason": "补充优质蛋白"},
    {"day": "周五", "mainDish": "香煎鳕鱼", "sideDish": "拍黄瓜", "reason": "相似做法换换口味"},
]

DETAILS = {
    "shoppingList": [
        {"category": "海鲜", "items": ["鲈鱼 2条", "鲜虾 500g", "鳕鱼 1块"]},
        {"category": "蔬菜", "items": ["黄瓜 2根", "西兰花 1颗", "菠菜 1把", "生菜 1颗"]},
        {"category": "调味品", "items": ["蒸鱼豉油", "大蒜"]},
    ],
    "recipes": [
        {
            "dishName": "清蒸鲈鱼",
            "type": "Main",
            "ingredients": ["鲈鱼 1条", "葱姜"],
            "steps": ["鱼处理干净", "大火蒸8分钟", "淋豉油和热油"],
            "tips": "蒸好后倒掉盘中腥水",
        },
        {
            "dishName": "拍黄瓜",
            "type": "Side",
            "ingredients": ["黄瓜 2根", "蒜末", "香醋"],
            "steps": ["拍碎切段", "加调料拌匀"],
            "tips": "现拌现吃更爽脆",
        },
    ],
}


def fenced(data) -> str:
    return "```json\n" + json.dumps(data, ensure_ascii=False, indent=2) + "\n```"


@pytest.fixture
def dishes_reply() -> str:
    return fenced(DISHES)


@pytest.fixture
def plan_reply() -> str:
    return fenced(PLAN)


@pytest.fixture
def details_reply() -> str:
    return fenced(DETAILS)


class FakeClaude:
    """Stands in for anthropic.AsyncAnthropic; replays queued reply texts."""

    def __init__(self):
        self.replies = []
        self.calls = []
        self.clients = []

    def queue(self, *replies) -> None:
        self.replies.extend(replies)

    def __call__(self, **kwargs):
        self.clients.append(kwargs)
        return SimpleNamespace(messages=SimpleNamespace(create=self._create))

    async def _create(self, **kwargs):
        self.calls.append(kwargs)
        await asyncio.sleep(0)
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return SimpleNamespace(content=[SimpleNamespace(type="text", text=reply)])

    def prompt(self, index: int) -> str:
        return self.calls[index]["messages"][0]["content"]


@pytest.fixture
def fake_claude(monkeypatch):
    fake = FakeClaude()
    monkeypatch.setattr(anthropic, "AsyncAnthropic", fake)
    return fake


@pytest.fixture
def no_api_key(monkeypatch):
    monkeypatch.setenv("API_KEY", "")
    monkeypatch.delenv("ANTHROPIC_API_KEY", raising=False)


@pytest.fixture
def client():
    from fastapi.testclient import TestClient
    from app.main import app
    from app.dependencies import reset_sessions
    with TestClient(app, raise_server_exceptions=True) as c:
        yield c
    reset_sessions()
