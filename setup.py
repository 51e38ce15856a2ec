# Copyright 2015 ClusterHQ. See LICENSE file for details.

from setuptools import setup, find_packages

setup(
    name="truenas_pylibzfs",
    version="0.1.0",
    description="Wrapper for libzfs and libzfs_core",
    license="Apache License, Version 2.0",
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "License :: OSI Approved :: Apache Software License",
        "Operating System :: POSIX :: Linux",
        "Programming Language :: Python :: 3 :: Only",
        "Topic :: System :: Filesystems",
        "Topic :: Software Development :: Libraries",
    ],
    keywords=[
        "ZFS",
        "OpenZFS",
        "libzfs",
        "libzfs_core",
    ],

    packages=find_packages(),
    include_package_data=True,
    python_requires=">=3.8",
    install_requires=[
        "cffi",
    ],
    setup_requires=[
        "cffi",
    ],
    extras_require={
        "tests": ["pytest"],
    },
    zip_safe=False,
    test_suite="truenas_pylibzfs.test",
)

# vim: softtabstop=4 tabstop=4 expandtab shiftwidth=4
