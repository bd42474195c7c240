from setuptools import setup, find_packages

setup(
    name="playlist-archiver",
    version="0.1.0",
    packages=find_packages(exclude=["tests", "tests.*"]),
    include_package_data=True,
    install_requires=[
        "typer",
        "rich",
        "pymonad>=2.4.0",
        "toolz",
        "yt-dlp",
        "google-api-python-client",
        "google-auth-oauthlib",
        "google-auth",
        "requests",
        "mutagen",
        "pathvalidate>=3.0",
        "PyYAML",
    ],
    extras_require={
        "dev": [
            "pytest",
            "pytest-mock",
            "ruff",
            "setuptools",
            "wheel",
            "twine",
        ]
    },
    entry_points={
        "console_scripts": [
            "playlist-archiver = playlist_archiver.cli:app",
        ],
    },
    description="Download a YouTube playlist as tagged audio files packed in a zip archive.",
    long_description=open("README.adoc").read(),
    long_description_content_type="text/asciidoc",
    classifiers=[
        "Programming Language :: Python :: 3",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
        "Environment :: Console",
        "Intended Audience :: End Users/Desktop",
        "Topic :: Multimedia :: Sound/Audio",
        "Topic :: Internet :: WWW/HTTP",
    ],
    python_requires=">=3.8",
)
