"""
Setup script for the backup_complete_restore package.
"""

from setuptools import setup, find_packages

setup(
    name="backup_complete_restore",
    version="0.1.0",
    description="Complete backup restoration (database and files) for Laravel-style application backups",
    packages=find_packages(include=["backup_restore", "backup_restore.*", "config", "config.*"]),
    py_modules=["backup_restore_exceptions"],
    install_requires=[
        "pydantic>=2.0.0,<3.0.0",
        "pydantic-settings>=2.0.0",
        "pydantic-yaml>=1.1.0",
        "pyyaml>=6.0",
        "tqdm>=4.64.0",
        "tenacity>=8.0.0",  # For retry logic
        "sqlalchemy>=2.0.0",
        "python-dotenv>=1.0.0",
    ],
    extras_require={
        "dev": [
            "pytest>=7.0.0",
            "pytest-cov>=4.0.0",
            "black>=23.0.0",
            "isort>=5.12.0",
            "mypy>=1.0.0",
            "flake8>=6.0.0",
        ],
        "mysql": [
            "pymysql>=1.0.0",
        ],
        "postgresql": [
            "psycopg2-binary>=2.9.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "restore-complete=backup_restore.cli:main",
            "restore-health-check=backup_restore.cli:health_check_main",
        ],
    },
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
    ],
    python_requires=">=3.9",
)
