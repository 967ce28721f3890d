import os
from setuptools import setup

# Utility function to read the README file.
# Used for the long_description.
def read(fname):
    return open(os.path.join(os.path.dirname(__file__), fname)).read()

# Parse the requirements-txt file and use for install_requires in pip
with open(os.path.join(os.path.dirname(__file__), 'requirements.txt')) as f:
    required = f.read().splitlines()

setup(
    name = "lvbench",
    version = "0.1.0",
    description = ("""Benchmarking interpreted and compiled right-hand sides of ODE systems"""),
    packages=['lvbench'],
    long_description=read('README.md'),
    long_description_content_type="text/markdown",
    classifiers=[
        "Development Status :: 4 - Beta"
    ],
    python_requires=">=3.9",
    install_requires = required,
    extras_require = {
        "test": ["pytest"],
    },
    entry_points = {
        "console_scripts": ["lvbench=lvbench.__main__:main"],
    },
)
