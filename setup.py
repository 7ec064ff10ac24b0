# setup.py
from setuptools import setup, find_packages

setup(
    name="sqlshim",
    version="0.1.0",
    description="Lazy single-connection database facade over MySQL, PostgreSQL and SQLite3 drivers",
    author="Swift Fox",
    packages=find_packages(
        exclude=(
            "tests",
            "tests.*",
            "docs",
            "build",
            "dist",
        )
    ),
    install_requires=[
        "PyMySQL>=1.1",
        "psycopg2-binary>=2.9",
    ],
    extras_require={
        "test": ["pytest>=7"],
    },
    python_requires=">=3.10",
)
