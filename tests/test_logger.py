import logging
import os

import pytest

import berry_editor
from berry_editor.common.utils import logger as logger_module
from berry_editor.common.utils.logger import NOTICE_LEVEL, get_logger


def test_log_directory_is_anchored_to_the_package_not_the_working_directory():
    if "BERRY_EDITOR_LOG_DIR" in os.environ:
        pytest.skip("log directory overridden by the environment")
    project_root = os.path.dirname(os.path.dirname(os.path.abspath(berry_editor.__file__)))
    assert logger_module.LOG_DIR == os.path.join(project_root, "logs")


def test_get_logger_names_live_under_the_package():
    assert get_logger().name == "berry_editor"
    assert get_logger("uploads").name == "berry_editor.uploads"
    assert get_logger("berry_editor.markup.sanitize").name == "berry_editor.markup.sanitize"


def test_info_is_logged_at_notice_level(caplog):
    with caplog.at_level(logging.DEBUG, logger="berry_editor"):
        get_logger("tests").info("hello")
    assert caplog.records[-1].levelno == NOTICE_LEVEL
