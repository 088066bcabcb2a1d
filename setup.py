"""Setup configuration for the eTicket Discord assistant."""

from setuptools import setup, find_packages

setup(
    name="eticket",
    version="0.1.0",
    description="A Discord support-ticket bot driven by a language model",
    packages=find_packages(where="src"),
    package_dir={"": "src"},
    python_requires=">=3.11",
    install_requires=[
        "py-cord>=2.6",
        "openai>=1.40",
        "aiosqlite>=0.20",
        "aiohttp>=3.9",
        "PyYAML>=6.0",
        "python-dotenv>=1.0",
        "prompt_toolkit>=3.0",
        "jsonschema>=4.0",
    ],
    extras_require={
        "test": [
            "pytest>=8.0",
            "pytest-asyncio>=0.23",
        ],
    },
    entry_points={
        "console_scripts": [
            "eticket=eticket.main:main",
        ],
    },
)
