from setuptools import setup, find_packages

with open("README.md", "r") as fh:
    long_description = fh.read()

setup(
    name="helium-reader",
    version="2026.10.18",
    description="Terminal/CLI Epub Reader that remembers where you left off",
    long_description=long_description,
    long_description_content_type="text/markdown",
    license="GPL-3.0",
    keywords=["epub", "epub3", "CLI", "Terminal", "Reader"],
    python_requires="~=3.8",
    packages=find_packages(where="src"),
    package_dir={"": "src"},
    entry_points={"console_scripts": ["helium = helium_reader.__main__:main"]},
    install_requires=["windows-curses;platform_system=='Windows'"],
    extras_require={"test": ["pytest"]},
    classifiers=[
        "Programming Language :: Python :: 3",
        "License :: OSI Approved :: GNU General Public License v3 (GPLv3)",
        "Operating System :: OS Independent",
    ],
)
