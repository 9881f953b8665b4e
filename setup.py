from setuptools import setup, find_packages

setup(
    name="fanoutviz",
    version="0.1.0",
    description="Live visualization engine for fan-out/fan-in requests",
    author="adamfilli",
    packages=find_packages(include=["fanoutviz", "fanoutviz.*"]),
    install_requires=[
        "matplotlib",
        "pandas",
        "requests",
    ],
    extras_require={
        "test": [
            "pytest",
        ],
    },
    include_package_data=True,
    python_requires=">=3.11",
)
