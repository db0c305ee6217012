"""
Setup script for lexicore.

lexicore is the adaptive review engine behind vocabulary and grammar
practice sessions. It decides:

1. Which items a learner sees next (vocabulary/grammar mix + urgency ranking)
2. How mastery, retention and confidence move after each answer
3. When each item comes back (SM-2 style ease factor)
4. What the learner should change (ranked recommendations)

The 'lexicore' command is the local entry point for inspection and testing.
"""

from setuptools import find_packages, setup

setup(
    name="lexicore",
    version="1.0.0",
    description="Adaptive review scheduling and mastery tracking for language learning",
    long_description=open("README.md", encoding="utf-8").read() if __import__("os").path.exists("README.md") else "",
    long_description_content_type="text/markdown",
    packages=find_packages(exclude=["tests", "tests.*"]),
    python_requires=">=3.10",
    install_requires=[
        # CLI
        "typer>=0.9.0",
        "rich>=13.0.0",
        # Database
        "sqlalchemy>=2.0.0",
        "psycopg2-binary>=2.9.0",
        # Config & Validation
        "pydantic>=2.0.0",
        "pydantic-settings>=2.0.0",
        # Logging
        "loguru>=0.7.0",
    ],
    extras_require={
        "dev": [
            "pytest>=7.0.0",
            "pytest-cov>=4.0.0",
            "ruff>=0.1.0",
            "mypy>=1.0.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "lexicore=lexicore.cli.main:main",
        ],
    },
    classifiers=[
        "Development Status :: 4 - Beta",
        "Environment :: Console",
        "Intended Audience :: Developers",
        "Intended Audience :: Education",
        "Operating System :: OS Independent",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Topic :: Education",
        "Topic :: Education :: Computer Aided Instruction (CAI)",
    ],
    keywords="learning spaced-repetition vocabulary grammar mastery",
)
