from setuptools import find_packages, setup


def read_requirements():
    with open("requirements.txt") as f:
        return f.read().splitlines()


setup(
    name="wcm",
    version="0.3.0",
    description="Wayfire Config Manager: edit Wayfire and wf-shell settings from plugin metadata",
    long_description=open("README.md").read(),
    long_description_content_type="text/markdown",
    classifiers=[
        "Programming Language :: Python :: 3",
        "License :: OSI Approved :: MIT License",
        "Operating System :: POSIX :: Linux",
    ],
    python_requires=">=3.11",
    install_requires=read_requirements(),
    extras_require={
        "test": [
            "pytest",
        ],
    },
    entry_points={
        "console_scripts": [
            "wcm = wcm.main:main",
        ],
    },
    packages=find_packages(include=["wcm", "wcm.*"]),
    include_package_data=True,
)
