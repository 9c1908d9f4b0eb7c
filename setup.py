"""Setup configuration for the Lexcord Discord bot."""

from setuptools import setup, find_packages

setup(
    name="lexcord",
    version="0.0.1",
    description="A Discord bot that keeps law firm staffing records consistent",
    packages=find_packages(where="src"),
    package_dir={"": "src"},
    python_requires=">=3.12",
    install_requires=[
        "py-cord",
        "aiosqlite",
        "PyYAML",
        "python-dotenv",
        "prompt_toolkit",
    ],
    extras_require={
        "test": [
            "pytest",
            "pytest-asyncio",
        ],
    },
    entry_points={
        "console_scripts": [
            "lexcord=lexcord.main:main",
        ],
    },
)
