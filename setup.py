from setuptools import setup, find_packages

setup(
    name="libraryledger",
    version="0.1.0",
    packages=find_packages(exclude=["tests", "tests.*"]),
    py_modules=["main", "cli"],
    install_requires=[
        "pynacl>=1.5.0",
    ],
    entry_points={
        "console_scripts": [
            "library-ledger=cli:main",
            "library-ledger-demo=main:main",
        ],
    },
    python_requires=">=3.8",
)
