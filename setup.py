from setuptools import setup, find_packages

setup(
    name="curve_sensitivity_engine",
    version="0.1.0",
    description="Curve-dependent parameter sensitivity decomposition",
    packages=find_packages(exclude=["tests", "tests.*"]),
    install_requires=[
        "numpy",
        "pandas",
    ],
    extras_require={
        "test": ["pytest"],
    },
    python_requires=">=3.8",
)
