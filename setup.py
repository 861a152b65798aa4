"""Setup configuration for the SupportGuard Telegram moderation bot."""

from setuptools import setup, find_packages

setup(
    name="supportguard",
    version="0.1.0",
    description="A Telegram bot that removes spam and scam senders from a support group using AI",
    packages=find_packages(where="src"),
    package_dir={"": "src"},
    python_requires=">=3.11",
    install_requires=[
        "aiogram>=3.4,<4",
        "openai>=1.0",
        "python-dotenv>=1.0",
        "PyYAML>=6.0",
        "prompt_toolkit>=3.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.4",
            "pytest-asyncio>=0.23",
        ],
    },
    entry_points={
        "console_scripts": [
            "supportguard=supportguard.main:main",
        ],
    },
)
