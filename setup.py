from __future__ import annotations

from setuptools import find_packages, setup

setup(
    name="watchpick",
    version="0.1.0",
    # Repo convention: backend code lives under `backend/`.
    # The weighted-draw core is importable as `watchpick`; the service layers
    # (domain/application/infrastructure/config/server) ship alongside it.
    package_dir={"": "backend"},
    packages=find_packages(
        where="backend",
        include=[
            "watchpick",
            "watchpick.*",
            "domain",
            "domain.*",
            "application",
            "application.*",
            "infrastructure",
            "infrastructure.*",
            "config",
            "config.*",
            "server",
            "server.*",
        ],
    ),
    package_data={"domain.config": ["priority_weights.yaml"]},
    python_requires=">=3.10",
    install_requires=[
        "pydantic>=2.10",
        "pyyaml>=6.0",
        "python-dotenv>=1.0",
        "fastapi>=0.110",
        "uvicorn>=0.29",
        "asyncpg>=0.29",
    ],
    extras_require={
        # fastapi.testclient needs httpx.
        "test": ["httpx>=0.27"],
    },
)
