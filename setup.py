"""
Lore Trigger Engine build configuration.

Usage:
    pip install -e .            # Library + API
    pip install -e .[test]      # With the test toolchain
"""

from setuptools import setup, find_packages

setup(
    name="loretrigger",
    version="0.1.0",
    description="Keyword-triggered lore and role-memory injection for chat prompts",
    packages=find_packages(include=["loretrigger", "loretrigger.*"]),
    install_requires=[
        "pydantic>=2.5",
        "pydantic-settings>=2.1",
        "loguru>=0.7",
        "numpy>=1.26",
        "fastapi>=0.110",
    ],
    extras_require={
        "test": [
            "pytest>=8.0",
            "pytest-asyncio>=0.23",
            "httpx>=0.27",
        ],
        "server": [
            "uvicorn>=0.27",
        ],
    },
    python_requires=">=3.11",
)
