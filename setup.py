# setup.py
from setuptools import setup, find_packages

setup(
    name="site_rebuilder",
    version="0.1.0",
    description="Crawls a website and drives a generation platform to rebuild it as a one-page site",
    packages=find_packages(exclude=["tests", "tests.*"]),
    package_data={"site_rebuilder.prompts": ["templates/*.j2"]},
    include_package_data=True,
    install_requires=[
        "aiohttp>=3.9",
        "beautifulsoup4>=4.12",
        "click>=8.1",
        "Jinja2>=3.1",
        "openai>=1.30",
        "playwright>=1.40",
        "pydantic>=2.5",
        "python-dotenv>=1.0",
        "PyYAML>=6.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.4",
            "pytest-asyncio>=0.23",
        ],
    },
    entry_points={
        "console_scripts": [
            "site-rebuilder=site_rebuilder.cli:cli",
        ],
    },
    python_requires=">=3.11",
)
