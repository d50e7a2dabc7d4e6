"""
Setup file.
"""

import os

from setuptools import find_packages, setup

URL = "https://github.com/zackees/jbuild"
KEYWORDS = "java javac jvm compiler incremental build classpath"
HERE = os.path.dirname(os.path.abspath(__file__))


def read_version() -> str:
    with open(os.path.join(HERE, "src", "jbuild", "__init__.py"), encoding="utf-8") as f:
        for line in f:
            if line.startswith("__version__"):
                return line.split("=")[1].strip().strip('"').strip("'")
    raise RuntimeError("Unable to find __version__")


if __name__ == "__main__":
    setup(
        name="jbuild",
        version=read_version(),
        description="Incremental compiler driver for JVM source trees",
        maintainer="Zachary Vorhies",
        keywords=KEYWORDS,
        url=URL,
        python_requires=">=3.10",
        package_dir={"": "src"},
        packages=find_packages("src"),
        install_requires=["psutil"],
        extras_require={"test": ["pytest"]},
        entry_points={"console_scripts": ["jbuild=jbuild.cli:main"]},
        include_package_data=True)
