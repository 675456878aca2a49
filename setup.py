"""Package setup for the DIAN Tax Calendar."""

from setuptools import setup, find_packages

setup(
    name="tax-calendar-alerts",
    version="1.0.0",
    description="Colombian DIAN tax deadline calendar and client alerting",
    long_description=open("README.md", encoding="utf-8").read(),
    long_description_content_type="text/markdown",
    packages=find_packages(exclude=["tests", "tests.*", "examples"]),
    python_requires=">=3.10",
    install_requires=[
        "rich>=13.0",
        "fastapi>=0.110",
        "pydantic>=2.0",
        "pydantic-settings>=2.0",
        "loguru>=0.7",
        "httpx>=0.25",
        "uvicorn>=0.27",
        "tzdata",
    ],
    extras_require={
        "test": [
            "pytest>=7.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "tax-calendar=tax_calendar.cli:main",
        ],
    },
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Financial and Insurance Industry",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Topic :: Office/Business :: Financial :: Accounting",
    ],
    keywords="dian colombia tax-calendar deadlines alerts",
)
