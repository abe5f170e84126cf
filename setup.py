"""
Setup script for the Azure Classic VM adapter.
"""
from setuptools import setup

with open("README.md", "r", encoding="utf-8") as f:
    long_description = f.read()

setup(
    name="azure-classic-vm-adapter",
    version="1.0.0",
    author="Cloud Platform Team",
    author_email="cloud-platform@example.com",
    description="Adapter mapping Azure Classic virtual machines onto a vendor-neutral compute interface",
    long_description=long_description,
    long_description_content_type="text/markdown",
    py_modules=[
        "main",
        "config",
        "cloudprovider",
        "azure_client",
        "classic_instance",
        "classic_resources",
    ],
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "Intended Audience :: System Administrators",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Topic :: System :: Systems Administration",
        "Topic :: Utilities",
    ],
    python_requires=">=3.9",
    install_requires=[
        "typer[all]>=0.9.0",
        "rich>=13.7.0",
        "azure-core>=1.29.0",
        "azure-identity>=1.15.0",
        "httpx>=0.26.0",
        "python-dotenv>=1.0.0",
        "pydantic>=2.5.0",
        "pydantic-settings>=2.1.0",
    ],
    extras_require={
        "dev": [
            "pytest>=7.0.0",
            "pytest-cov>=4.0.0",
            "black>=23.0.0",
            "ruff>=0.1.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "classic-vm=main:main",
        ],
    },
    keywords=[
        "azure",
        "vm",
        "classic",
        "service-management",
        "multi-cloud",
        "cli",
    ],
)
