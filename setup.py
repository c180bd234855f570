"""
Setup script for ad-dormant-accounts.
"""

from setuptools import setup, find_packages

setup(
    name="ad-dormant-accounts",
    version="0.1.0",
    description="Find, export and remediate inactive Active Directory user accounts",
    packages=find_packages(where="src"),
    package_dir={"": "src"},
    python_requires=">=3.9",
    install_requires=[
        "ldap3>=2.9",
        "pydantic>=2.0",
        "mcp>=1.0,<2",
        "anyio>=4.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "ad-dormant-accounts=ad_dormant_accounts.cli:run",
            "ad-dormant-accounts-mcp=ad_dormant_accounts.server:main",
        ],
    },
)
