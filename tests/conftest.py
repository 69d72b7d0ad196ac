"""
测试公共夹具

条目构造函数位于 tests/_support/factories.py。
"""

import logging
from typing import Generator

import pytest


@pytest.fixture
def restore_root_logging() -> Generator[None, None, None]:
    """调用 setup_logging 的测试结束后恢复根 logger"""
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)
