"""
Setup script for the equipment loan (peminjaman barang) backend.
"""
from setuptools import setup, find_packages

setup(
    name="peminjaman-barang",
    version="1.0.0",
    description="Equipment Loan Service Backend",
    packages=find_packages(exclude=["tests", "tests.*"]),
    py_modules=["main"],
    python_requires=">=3.9",
    install_requires=[
        "fastapi",
        "uvicorn",
        "sqlalchemy>=2.0",
        "pydantic>=2.4",
        "pydantic-settings",
        "structlog",
    ],
    extras_require={
        "test": [
            "pytest",
            "pytest-asyncio",
            "pytest-mock",
            "httpx",
        ],
    },
)
