from setuptools import setup


def readme():
    with open('README.rst') as f:
        return f.read()


setup(
    name='socialfed',
    version='1.0.0',
    description='ActivityPub federation core with notifications and web push',
    long_description=readme(),
    classifiers=[
        'Development Status :: 4 - Beta',
        'Intended Audience :: Developers',
        'License :: OSI Approved :: BSD License',
        'Programming Language :: Python :: 3',
        'Programming Language :: Python :: 3.11',
        'Programming Language :: Python :: 3.12',
        'Topic :: Communications',
        'Topic :: Internet :: WWW/HTTP',
    ],
    license='BSD',
    packages=[
        'socialfed',
        'socialfed.db',
        'socialfed.db.memory',
        'socialfed.db.dynamodb',
    ],
    python_requires='>=3.11',
    install_requires=[
        'pynamodb>=6.0.0',
        'cryptography>=41.0.0',
        'pywebpush>=1.14.0',
        'requests>=2.28.0',
    ],
    extras_require={
        'test': [
            'pytest>=7.0.0',
            'pytest-asyncio>=0.21.0',
        ],
    },
    include_package_data=True,
    zip_safe=False)
