import setuptools

with open("README.md", "r") as fh:
    long_description = fh.read()

setuptools.setup(
    name='socks4dialer',
    version='1.0',
    author="acuifex",
    author_email="proxychains@acuifex.ru",
    description="A python module for dialing through SOCKS4 and SOCKS4a proxies.",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=["socks4dialer"],
    python_requires=">=3.8",
    install_requires=[
        'urllib3>=2',
    ],
    extras_require={
        'test': [
            'pytest',
            'pytest-mock',
        ],
    },
    classifiers=[
        "Programming Language :: Python :: 3.10",
        "License :: OSI Approved :: GNU Affero General Public License v3 or later (AGPLv3+)",
        "Operating System :: OS Independent",
    ],
 )
