# setup.py
from setuptools import setup, find_packages

setup(
    name="classifieds",
    version="0.1",
    packages=find_packages(exclude=["test", "test.*"]),
    install_requires=[
        "fastapi>=0.115",
        "uvicorn",
        "asyncpg",
        "pydantic>=2.5",
        "slowapi",
        "async-lru",
        "firebase-admin",
        "aiohttp",
    ],
    extras_require={
        "test": [
            "pytest",
            "pytest-asyncio",
            "httpx",
            "polyfactory",
        ],
    },
    python_requires=">=3.10",
)
