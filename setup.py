from setuptools import setup, find_packages

setup(
    name='versionslot',
    packages=find_packages('src'),
    package_dir={'': 'src'},
    version='0.1.0',
    description='Concurrency-safe semantic version bumps stored in a remote repository file',
    keywords=['semver', 'versioning', 'git', 'ci', 'automation'],
    classifiers=['Development Status :: 3 - Alpha',
                 'Intended Audience :: Developers',
                 'Topic :: Software Development :: Build Tools',
                 'Topic :: Software Development :: Version Control :: Git',
                 'Programming Language :: Python :: 3'],
    python_requires='>=3.11',
    install_requires=['requests', 'docopt', 'rich', 'blinker'],
    extras_require={
        'test': ['pytest', 'pytest-httpserver'],
    },
    entry_points={
        "console_scripts": ['versionslot = versionslot.cli:run_versionslot']
    }
)
