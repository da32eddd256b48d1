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

'''WalletHistory logging facilities.'''

import logging
from typing import Optional, Union


LOG_FORMAT = '%(asctime)s:%(levelname)s:%(name)s:%(message)s'


class Logs(object):
    '''
    Owns the `wallethistory` logger that every logger in this package hangs off.

    The process root logger is left alone so that an embedding application keeps control of its
    own logging, output from here still propagates up to it.
    '''

    def __init__(self, root_name: str='wallethistory') -> None:
        self.root = logging.getLogger(root_name)
        self.stream_handler = logging.StreamHandler()
        self.file_handler: Optional[logging.FileHandler] = None
        self.add_handler(self.stream_handler)

    def add_handler(self, handler: logging.Handler) -> None:
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        self.root.addHandler(handler)

    def remove_handler(self, handler: logging.Handler) -> None:
        self.root.removeHandler(handler)

    def add_file_output(self, path: str) -> logging.FileHandler:
        # Only one log file at a time, a later call moves the output.
        if self.file_handler is not None:
            self.remove_handler(self.file_handler)
            self.file_handler.close()
        self.file_handler = logging.FileHandler(path, encoding='utf-8')
        self.add_handler(self.file_handler)
        return self.file_handler

    def get_logger(self, name: str) -> logging.Logger:
        return self.root.getChild(name)

    def set_level(self, level: Union[str, int]) -> None:
        '''Level can be a name, such as "info", or a constant from the logging module.'''
        if isinstance(level, str):
            level_value = logging.getLevelName(level.upper())
            if not isinstance(level_value, int):
                raise ValueError(f"unknown log level '{level}'")
            level = level_value
        self.root.setLevel(level)

    def level(self) -> int:
        return self.root.getEffectiveLevel()

    def is_debug_level(self) -> bool:
        return self.level() <= logging.DEBUG


logs = Logs()
