"""Navigator Vault Meta information.
   Navigator Vault is the client-side key management core of a
   zero-knowledge password manager.
"""
__title__ = 'navigator_vault'
__description__ = (
   'Navigator Vault keeps vault items encrypted under a client-held '
   'master key, and moves them between accounts with export bundles.'
)
__version__ = '0.1.0'
__copyright__ = 'Copyright (c) 2023 Jesus Lara'
__author__ = 'Jesus Lara'
__author_email__ = 'jesuslarag@gmail.com'
__license__ = 'Apache-2.0'
__url__ = 'https://github.com/phenobarbital/navigator-vault'
