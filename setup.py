from setuptools import find_namespace_packages, setup

setup(
    name='channelsync',
    version='0.1.0',
    description='Mirror release channels into an integrity-verified, re-hostable cache',
    package_dir={'': 'src'},
    packages=find_namespace_packages(where='src', include=['channelsync*']),
    python_requires='>=3.11',
    install_requires=[
        'aiohttp',
        'aiofiles',
        'packaging',
        'platformdirs',
        'PyYAML',
        'rich',
        'tomli-w',
    ],
    extras_require={
        'test': [
            'pytest',
            'pytest-asyncio',
            'pytest-mock',
        ],
    },
    entry_points={
        'console_scripts': [
            'channelsync=channelsync.cli:main',
        ],
    },
)
