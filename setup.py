"""
Setup script for polymat

polymat is a pure-Python package; the numeric kernels come from numpy and
scipy, so no native build step is required. This script handles:
1. Reading the version from src/polymat/__init__.py
2. Declaring the src/ layout and runtime dependencies
"""

from pathlib import Path
from setuptools import setup, find_packages


# Read version from src/polymat/__init__.py
def get_version():
    version_file = Path("src/polymat/__init__.py")
    if version_file.exists():
        for line in version_file.read_text().splitlines():
            if line.startswith("__version__"):
                return line.split("=")[1].strip().strip('"').strip("'")
    return "0.1.0"


# Read long description from README
def get_long_description():
    readme = Path("README.md")
    if readme.exists():
        return readme.read_text(encoding="utf-8")
    return ""


setup(
    name="polymat",
    version=get_version(),
    description="Storage-polymorphic matrices: dense, diagonal, CSR and Knuth linked sparse",
    long_description=get_long_description(),
    long_description_content_type="text/markdown",
    package_dir={"": "src"},
    packages=find_packages(where="src"),
    python_requires=">=3.9",
    install_requires=[
        "numpy>=1.21",
        "scipy>=1.7",
    ],
    extras_require={
        "test": [
            "pytest>=7.0",
        ],
    },
    zip_safe=True,
)
