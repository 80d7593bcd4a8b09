"""
Setup script for Better Do It.
"""
from setuptools import setup, find_packages

setup(
    name="betterdoit",
    version="0.1.0",
    packages=find_packages(include=["betterdoit", "betterdoit.*"]),
    install_requires=[
        "click>=8.1.0",
        "httpx>=0.25.0",
        "fastapi>=0.110.0",
        "uvicorn>=0.27.0",
        "pydantic>=2.5.0",
        "pydantic-settings>=2.1.0",
        "psycopg2-binary>=2.9.9",
        "tzdata>=2023.3",
    ],
    extras_require={
        "test": [
            "pytest>=7.4.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "betterdoit=betterdoit.__main__:main",
            "bdo=betterdoit.cli:cli",
        ],
    },
    python_requires=">=3.11",
)
