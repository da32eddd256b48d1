# WalletHistory - local transaction history reconciliation store
# Copyright (C) 2019-2020 The ElectrumSV Developers
#
# Permission is hereby granted, free of charge, to any person
# obtaining a copy of this software and associated documentation files
# (the "Software"), to deal in the Software without restriction,
# including without limitation the rights to use, copy, modify, merge,
# publish, distribute, sublicense, and/or sell copies of the Software,
# and to permit persons to whom the Software is furnished to do so,
# subject to the following conditions:
#
# The above copyright notice and this permission notice shall be
# included in all copies or substantial portions of the Software.
#
# THE SOFTWARE IS PROVIDED "AS IS", WITHOUT WARRANTY OF ANY KIND,
# EXPRESS OR IMPLIED, INCLUDING BUT NOT LIMITED TO THE WARRANTIES OF
# MERCHANTABILITY, FITNESS FOR A PARTICULAR PURPOSE AND
# NONINFRINGEMENT. IN NO EVENT SHALL THE AUTHORS OR COPYRIGHT HOLDERS
# BE LIABLE FOR ANY CLAIM, DAMAGES OR OTHER LIABILITY, WHETHER IN AN
# ACTION OF CONTRACT, TORT OR OTHERWISE, ARISING FROM, OUT OF OR IN
# CONNECTION WITH THE SOFTWARE OR THE USE OR OTHER DEALINGS IN THE
# SOFTWARE.

from __future__ import annotations
import json
import os
import stat
import threading
from typing import Any, Callable, cast, Type, TypeVar

from .constants import MAX_CONFIRMED_TXS, StorageKind
from .logs import logs
from .util import make_dir


logger = logs.get_logger("config")

CONFIG_FILE_NAME = "config"
CONFIG_VERSION = 1

T = TypeVar('T')


def default_user_dir() -> str:
    return os.path.join(os.path.expanduser("~"), ".wallethistory")


class SimpleConfig:
    """
    Settings for a history store, looked up in two layers.

    Options given at startup, usually from the command line, take precedence over the `config`
    JSON file in the history data directory. Only the file layer is ever written, and a key that
    was given at startup cannot be changed for the lifetime of the object.

    Keys: `history_path`, `history_storage`, `confirmed_txs_limit`, `log_level`, `log_file`.
    """

    def __init__(self, options: dict[str, Any]|None=None,
            read_user_config_function: Callable[[str], dict[str, Any]]|None=None,
            read_user_dir_function: Callable[[], str]|None=None) -> None:
        self.lock = threading.RLock()
        # The version describes the file, it is not something to override.
        self.cmdline_options = { key: value for key, value in (options or {}).items()
            if key != 'config_version' }
        self.user_config: dict[str, Any] = {}

        self.user_dir = read_user_dir_function or default_user_dir
        self.path = self.data_path()

        read_function = read_user_config_function or read_user_config
        self.user_config = read_function(self.path) or { 'config_version': CONFIG_VERSION }

    def data_path(self) -> str:
        path = self.get('history_path') or self.user_dir()
        make_dir(path)
        path = os.path.abspath(path)
        logger.debug("history data directory '%s'", path)
        return path

    def file_path(self, file_name: str) -> str|None:
        return os.path.join(self.path, file_name) if self.path else None

    def is_modifiable(self, key: str) -> bool:
        return key not in self.cmdline_options

    def get(self, key: str, default: Any=None) -> Any|None:
        with self.lock:
            value = self.cmdline_options.get(key)
            if value is None:
                value = self.user_config.get(key, default)
            return value

    def get_explicit_type(self, return_type: Type[T], key: str, default: T) -> T:
        value = self.get(key, default)
        # bool is an int subclass and never a valid count.
        if not isinstance(value, return_type) or \
                (return_type is int and isinstance(value, bool)):
            raise ValueError(f"config key '{key}' should be {return_type.__name__}, "
                f"got {value!r}")
        return cast(T, value)

    def set_key(self, key: str, value: Any, save: bool=True) -> None:
        if not self.is_modifiable(key):
            logger.warning("Not changing config key '%s' given at startup", key)
            return
        with self.lock:
            if value is None:
                self.user_config.pop(key, None)
            else:
                self.user_config[key] = value
            if save:
                self.save_user_config()

    def save_user_config(self) -> None:
        config_path = self.file_path(CONFIG_FILE_NAME)
        if config_path is None:
            return
        with self.lock:
            text = json.dumps(self.user_config, indent=4, sort_keys=True)
        with open(config_path, "w", encoding='utf-8') as f:
            f.write(text)
        os.chmod(config_path, stat.S_IREAD | stat.S_IWRITE)

    def get_config_version(self) -> int:
        version = self.get_explicit_type(int, 'config_version', CONFIG_VERSION)
        if version > CONFIG_VERSION:
            logger.warning("config version %d is newer than the supported version %d",
                version, CONFIG_VERSION)
        return version

    def get_storage_kind(self) -> StorageKind:
        return StorageKind(self.get_explicit_type(str, 'history_storage',
            StorageKind.DATABASE.value))

    def get_confirmed_txs_limit(self) -> int:
        limit = self.get_explicit_type(int, 'confirmed_txs_limit', MAX_CONFIRMED_TXS)
        if not 1 <= limit <= MAX_CONFIRMED_TXS:
            raise ValueError(f"config key 'confirmed_txs_limit' should be from 1 to "
                f"{MAX_CONFIRMED_TXS}, got {limit}")
        return limit

    def get_log_level(self) -> str|None:
        return cast(str|None, self.get("log_level"))

    def get_log_file_name(self) -> str|None:
        "A file name in the data directory to also send log output to."
        return cast(str|None, self.get("log_file"))


def read_user_config(path: str) -> dict[str, Any]:
    "The settings in the `config` file of the given data directory, or nothing."
    if not path:
        return {}
    config_path = os.path.join(path, CONFIG_FILE_NAME)
    if not os.path.exists(config_path):
        return {}
    try:
        with open(config_path, "r", encoding='utf-8') as f:
            result = json.load(f)
    except (OSError, ValueError):
        logger.exception("Cannot read config file %s", config_path)
        return {}
    if not isinstance(result, dict):
        logger.warning("Ignoring config file %s, it does not hold an object", config_path)
        return {}
    return result
