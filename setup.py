#!/usr/bin/env python
# -*- coding: utf8 -*-
# vim: ts=4 sw=4 et ai:

import pathlib
from setuptools import setup

base = pathlib.Path(__file__).parent

README = (base / 'README.md').read_text()

setup(
      name='tftpfetch',
      version='0.1.0',
      description='Python TFTP read client',
      long_description=README,
      long_description_content_type='text/markdown',
      packages=[
          'tftpfetch',
          'tftpfetch.exceptions',
          'tftpfetch.packet',
          'tftpfetch.packet.types',
          'tftpfetch.packet.factory',
          'tftpfetch.context',
          'tftpfetch.context.metrics',
          'tftpfetch.states',
      ],
      python_requires='>=3.6',
      classifiers=[
        'Programming Language :: Python :: 3.6',
        'Development Status :: 4 - Beta',
        'Environment :: Console',
        'Intended Audience :: Developers',
        'License :: OSI Approved :: MIT License',
        'Operating System :: OS Independent',
        'Topic :: Internet',
        ]
      )
