"""Setup configuration for ironic-mock."""

from setuptools import setup, find_packages

setup(
    name="ironic-mock",
    version="0.1.0",
    description="Programmable HTTP mock of the Ironic bare-metal provisioning API for tests",
    package_dir={"": "src"},
    packages=find_packages(where="src"),
    python_requires=">=3.10",
    install_requires=[
        "pydantic>=2.0.0",
    ],
    extras_require={
        "dev": [
            "pytest>=8.0.0",
            "pytest-asyncio>=0.23.0",
            "httpx>=0.27.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "ironic-mock=ironic_mock.cli:main",
        ],
    },
)
