from setuptools import find_packages, setup

setup(
    name='tfmigrate',
    version='0.1',
    py_modules=['tfmigrate'],
    packages=find_packages(include=['engine', 'engine.*']),
    install_requires=[
        'Click',
        'python-hcl2',
        'ipaddr',
        'PyYAML',
        'tqdm'
    ],
    extras_require={
        'test': ['pytest'],
    },
    entry_points='''
        [console_scripts]
        tfmigrate=tfmigrate:cli
    ''',
)
