# setup.py
from setuptools import setup, find_packages

setup(
    name="losp",
    version="0.1.0",
    description="A small Lisp-family language compiled to bytecode for a stack VM",
    packages=find_packages(include=["losp", "losp.*"]),
    python_requires=">=3.10",
    extras_require={
        "test": ["pytest", "hypothesis"],
    },
    entry_points={
        "console_scripts": ["losp=losp.__main__:main"],
    },
    zip_safe=False,
)
