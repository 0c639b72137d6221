"""Setup configuration for ingredients package."""
from setuptools import setup, find_packages

setup(
    name="ingredients",
    version="0.1.0",
    description="Model-agnostic profiles, dependence curves and feature importance",
    packages=find_packages(where=".", exclude=["tests", "tests.*"]),
    package_dir={"": "."},
    python_requires=">=3.9",
    install_requires=[
        "numpy",
        "pandas",
        "scipy",
        "scikit-learn",
        "plotly",
        "matplotlib",
    ],
    extras_require={
        "test": ["pytest"],
    },
)
