#!/usr/bin/env python3

# python setup.py sdist --format=zip,gztar

import importlib.util
import sys

from setuptools import setup, find_packages

if sys.version_info[:3] < (3, 10, 0):
    sys.exit("Error: WalletHistory requires Python version >= 3.10.0...")

with open('contrib/requirements/requirements.txt') as f:
    requirements = f.read().splitlines()

with open('contrib/requirements/requirements-test.txt') as f:
    requirements_test = f.read().splitlines()

version_spec = importlib.util.spec_from_file_location('version', 'wallethistory/version.py')
assert version_spec is not None and version_spec.loader is not None
version = importlib.util.module_from_spec(version_spec)
version_spec.loader.exec_module(version)

setup(
    name="WalletHistory",
    version=version.PACKAGE_VERSION,
    python_requires=">=3.10",
    install_requires=requirements,
    extras_require={
        'test': requirements_test,
    },
    packages=find_packages(include=['wallethistory', 'wallethistory.*']),
    description="Local transaction history reconciliation store for multi-chain wallets",
    author="The WalletHistory Developers",
    license="MIT Licence",
    long_description="""Pending, confirmed and on-chain transaction history merged into one
bounded, de-duplicated history per account."""
)
