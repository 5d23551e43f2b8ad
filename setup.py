"""Setup script for prefixload."""

from setuptools import setup, find_packages
from pathlib import Path

# Read README for long description
readme_path = Path(__file__).parent / "README.md"
long_description = readme_path.read_text(encoding="utf-8") if readme_path.exists() else ""

# Read requirements
requirements_path = Path(__file__).parent / "src" / "requirements.txt"
requirements = []
if requirements_path.exists():
    with open(requirements_path, 'r', encoding='utf-8') as f:
        requirements = [line.strip() for line in f if line.strip() and not line.startswith('#')]

setup(
    name="prefixload",
    version="0.4.0",
    author="Aleksey Kalsin",
    author_email="aleksey@kalsin.pro",
    description="S3 backup by file name prefix",
    long_description=long_description,
    long_description_content_type="text/markdown",
    url="https://github.com/b4rgut/prefixload",
    packages=find_packages(where="src"),
    package_dir={"": "src"},
    classifiers=[
        "Development Status :: 4 - Beta",
        "Environment :: Console",
        "Intended Audience :: System Administrators",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Topic :: System :: Archiving :: Backup",
    ],
    python_requires=">=3.9",
    install_requires=requirements,
    extras_require={
        "dev": [
            "pytest>=7.4.0",
            "black>=23.0.0",
            "flake8>=6.0.0",
            "mypy>=1.5.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "prefixload=prefixload.cli:cli",
        ],
    },
    include_package_data=True,
    package_data={
        "prefixload": ["config/default_config.yml"],
    },
    zip_safe=False,
    keywords="s3 backup minio etag prefix",
    project_urls={
        "Bug Reports": "https://github.com/b4rgut/prefixload/issues",
        "Source": "https://github.com/b4rgut/prefixload",
    },
)
