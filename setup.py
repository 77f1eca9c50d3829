from setuptools import setup, find_packages

with open("requirements.txt") as f:
    required = f.read().splitlines()

setup(
    name="comptrack",
    version="0.0.1",
    packages=find_packages("src"),
    package_dir={"": "src"},
    install_requires=required,
    extras_require={"test": ["pytest"]},
    python_requires=">=3.10",
    entry_points={"console_scripts": ["comptrack = comptrack.cli:main"]},
    description="Track working-tree files as components and persist changes as ordered change-sets",
)
