from setuptools import setup, find_packages

setup(
    name="apply-edits",
    version="0.1.0",
    packages=find_packages(exclude=["tests", "tests.*"]),
    install_requires=[
        "pyyaml",
        "textual",
    ],
    extras_require={
        "test": [
            "pytest",
        ],
    },
    entry_points={
        "console_scripts": [
            "apply-edits=apply_edits.cli:main",
        ],
    },
    author="Uday Kanth",
    description="Targeted, atomic text edits with closest-match retry diagnostics.",
)
