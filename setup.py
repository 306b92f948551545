from setuptools import setup, find_packages

setup(
    name="simtree",
    version="0.1",
    packages=find_packages(where="src"),
    package_dir={"": "src"},
    python_requires=">=3.10",
    install_requires=[
        "requests",
        "tenacity",
        "ratelimit",
        "python-dotenv",
        "pyyaml",
        "loguru",
        "networkx>=3.4",
        "pandas",
    ],
    extras_require={
        "test": ["pytest"],
    },
)
