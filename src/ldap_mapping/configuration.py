"""
This module includes the default configuration and the lookup of the
configured search-base and scope for the mapped classes.
"""
import os

import ldap

DEFAULT_CONFIG = {
	'uri': None,
	'host': '127.0.0.1',
	'port': 389,
	'method': 'plain',
	'base': '',
	'bind_dn': None,
	'bind_format': None,
	'user': os.environ.get('USER'),
	'password': None,
	'password_block': None,
	'store_password': True,
	'allow_anonymous': True,
	'try_sasl': False,
	'retries': 3,
	'retry_wait': 3,
	'timeout': 0,
	'retry_on_timeout': True,
	'ldap_scope': ldap.SCOPE_ONELEVEL,
	'return_objects': True,
	'cert_path': None,
}
"""
The defaults of all configuration options. The dictionary given to
establish_connection is merged over these values.
"""

METHODS = ('plain', 'tls', 'ssl')

def merge_config(config=None, **options):
	"""
	Returns a new configuration with the defaults, the given config and the
	given keyword options (in this order of precedence).
	"""
	merged = dict(DEFAULT_CONFIG)
	merged.update(config or {})
	merged.update(options)
	if merged['method'] not in METHODS:
		raise ValueError("Unknown connection method: %r" % merged['method'])
	return merged

class Configuration(object):
	"""
	Mixin for the mapped classes which resolves the configured values.
	"""

	config = None
	"""
	The configuration stored by the last establish_connection on the class
	or one of its bases.
	"""

	prefix = None
	"""
	The prefix of the entries of the class relative to the configured base,
	e.g. 'ou=People'. Defaults to 'ou=<ClassName>'.
	"""

	scope = None
	"""
	The scope of the search-operations. Defaults to the configured
	ldap_scope.
	"""

	@classmethod
	def configuration(cls):
		"""
		Returns the effective configuration of the class.
		"""
		return merge_config(cls.config)

	@classmethod
	def search_base(cls):
		"""
		Returns the DN below which the entries of the class are stored.
		"""
		prefix = cls.prefix
		if prefix is None:
			prefix = 'ou=%s' % cls.__name__
		base = cls.configuration()['base']
		if not base:
			return prefix
		if not prefix:
			return base
		if prefix.lower().endswith(base.lower()):
			return prefix
		return '%s,%s' % (prefix, base)

	@classmethod
	def search_scope(cls):
		"""
		Returns the scope used for finding entries of the class.
		"""
		if cls.scope is not None:
			return cls.scope
		return cls.configuration()['ldap_scope']
