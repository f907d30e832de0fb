"""
This module includes the connection handling of the mapped classes: creating
and binding the python-ldap connection, reconnecting on stale connections and
caching the schema of the server.
"""
import logging
import os
import time
import weakref

import ldap
import ldap.sasl

from .configuration import Configuration, merge_config
from .errors import AuthenticationError, LdapConnectionError
from .schema import Schema

logger = logging.getLogger(__name__)

_schemas = weakref.WeakKeyDictionary()


class NullConnection(object):
	"""
	If no connection is specified this connection object is actually used in
	order to not block in unit-tests, etc.
	"""
	def search_s(self, *args, **kwds):
		"""
		Searches the directory
		"""
		return []
	def add_s(self, *args, **kwds):
		"""
		Adds an element to the directory
		"""
		return None
	def modify_s(self, *args, **kwds):
		"""
		Modifies an element in the directory
		"""
		return None
	def delete_s(self, *args, **kwds):
		"""
		Deletes an entry in the directory
		"""
		return None
	def modrdn_s(self, *args, **kwds):
		"""
		Modifies the DN of an entry in the directory
		"""
		return None
	def simple_bind_s(self, *args, **kwds):
		return None
	def unbind_s(self):
		return None


class Connection(Configuration):
	"""
	Mixin for the mapped classes which manages the connection. The connection
	is stored as class-attribute: a connection established on Base is shared
	by all mapped classes, a connection assigned to a subclass only by that
	class and its children.
	"""

	@classmethod
	def establish_connection(cls, config=None, **options):
		"""
		Establishes the connection to ldap and binds.

		config -- is a dictionary which might contain the options of
				  DEFAULT_CONFIG, e.g.:
			* uri: the URI to the server (or host, port and method)
			* base: the base of all prefixes
			* bind_dn: the DN for the simple bind (or bind_format and user)
			* password: the password of the bind-user
			* password_block: a callable returning the password
			* allow_anonymous: bind anonymously if no other bind succeeds
			* try_sasl: try a SASL GSSAPI bind first
			* cert_path: the CA-certificate of the server
			* timeout: the amount of seconds which should be waited before
					   raising a timeout-exception
			* retries, retry_wait: how often and how long to wait when the
								   server is down
		options -- keyword options which override the config
		"""
		cls.config = merge_config(config, **options)
		cls.connection = cls._connect()
		return cls.connection

	connect = establish_connection

	@classmethod
	def close(cls):
		"""
		Discards the current connection.
		"""
		owner = cls._connection_owner()
		connection = owner.connection
		owner.connection = NullConnection()
		_schemas.pop(connection, None)
		try:
			connection.unbind_s()
		except ldap.LDAPError as error:
			logger.warning("Unbinding failed: %s", error)

	@classmethod
	def reconnect(cls):
		"""
		Replaces the connection by a new one created with the stored
		configuration.
		"""
		owner = cls._connection_owner()
		logger.info("Reconnecting to %s", owner._uri(owner.configuration()))
		_schemas.pop(owner.connection, None)
		owner.connection = owner._connect()
		return owner.connection

	@classmethod
	def do_bind(cls, connection=None):
		"""
		Binds the connection. The methods are tried in this order: SASL
		GSSAPI (if try_sasl is set), simple bind with the configured
		credentials, anonymous bind (if allow_anonymous is set).
		"""
		config = cls.configuration()
		if connection is None:
			connection = cls.connection
		if config['try_sasl'] and cls._sasl_bind(connection, config):
			return connection
		bind_dn = cls._bind_dn(config)
		if bind_dn and cls._simple_bind(connection, config, bind_dn):
			return connection
		if config['allow_anonymous']:
			try:
				connection.simple_bind_s('', '')
				logger.info("Bound anonymously")
				return connection
			except ldap.SERVER_DOWN:
				raise
			except ldap.LDAPError as error:
				raise AuthenticationError(
					"Anonymous bind failed: %s" % error
				) from error
		raise AuthenticationError("All authentication methods exhausted")

	@classmethod
	def execute(cls, operation, *args, **kwds):
		"""
		Calls the given operation (e.g. 'search_s') on the connection. If the
		server went away the connection is re-established and the operation
		is retried within the configured number of retries.
		"""
		config = cls.configuration()
		attempt = 0
		while True:
			try:
				return getattr(cls.connection, operation)(*args, **kwds)
			except ldap.SERVER_DOWN as error:
				attempt = cls._retry_or_raise(config, attempt, error)
			except ldap.TIMEOUT as error:
				if not config['retry_on_timeout']:
					raise
				attempt = cls._retry_or_raise(config, attempt, error)
			cls.reconnect()

	@classmethod
	def schema(cls):
		"""
		Returns the Schema of the server of the current connection. The
		schema is fetched once per connection.
		"""
		connection = cls.connection
		if connection not in _schemas:
			_schemas[connection] = Schema.fetch(connection)
		return _schemas[connection]

	# ------ helper methods ------
	@classmethod
	def _connection_owner(cls):
		"""
		Returns the class on which the current connection was assigned.
		"""
		for klass in cls.__mro__:
			if 'connection' in vars(klass):
				return klass
		return cls

	@classmethod
	def _connect(cls):
		config = cls.configuration()
		uri = cls._uri(config)
		attempt = 0
		while True:
			try:
				connection = cls.do_bind(cls._initialize(uri, config))
				break
			except ldap.SERVER_DOWN as error:
				try:
					attempt = cls._retry_or_raise(config, attempt, error)
				except ldap.SERVER_DOWN:
					raise LdapConnectionError(
						"Could not connect to %s: %s" % (uri, error)
					) from error
		logger.info("Connected to %s", uri)
		return connection

	@classmethod
	def _initialize(cls, uri, config):
		connection = ldap.initialize(uri)
		connection.protocol_version = ldap.VERSION3
		connection.set_option(ldap.OPT_REFERRALS, 0)
		if config['timeout']:
			connection.set_option(ldap.OPT_NETWORK_TIMEOUT, config['timeout'])
			connection.timeout = config['timeout']
		if config['cert_path']:
			connection.set_option(
				ldap.OPT_X_TLS_CACERTFILE,
				os.path.abspath(config['cert_path'])
			)
			connection.set_option(ldap.OPT_X_TLS_NEWCTX, 0)
		if config['method'] == 'tls':
			connection.start_tls_s()
		return connection

	@classmethod
	def _retry_or_raise(cls, config, attempt, error):
		"""
		Returns the number of the next attempt or re-raises the error if the
		retries are exhausted.
		"""
		retries = config['retries']
		if retries >= 0 and attempt >= retries:
			logger.error("Giving up after %d retries: %s", attempt, error)
			raise error
		attempt += 1
		logger.warning(
			"Connection problem (%s), retry %d in %s seconds",
			error, attempt, config['retry_wait']
		)
		time.sleep(config['retry_wait'])
		return attempt

	@staticmethod
	def _uri(config):
		if config['uri']:
			return config['uri']
		scheme = config['method'] == 'ssl' and 'ldaps' or 'ldap'
		return '%s://%s:%d' % (scheme, config['host'], config['port'])

	@staticmethod
	def _bind_dn(config):
		if config['bind_dn']:
			return config['bind_dn']
		if config['bind_format'] and config['user']:
			return config['bind_format'] % config['user']
		return None

	@classmethod
	def _password(cls, config):
		if config['password'] is not None:
			return config['password']
		if config['password_block'] is None:
			return None
		password = config['password_block']()
		if config['store_password'] and cls.config is not None:
			cls.config['password'] = password
		return password

	@classmethod
	def _simple_bind(cls, connection, config, bind_dn):
		password = cls._password(config)
		if password is None:
			logger.info("No password for %s available", bind_dn)
			return False
		try:
			connection.simple_bind_s(bind_dn, password)
		except ldap.SERVER_DOWN:
			raise
		except ldap.LDAPError as error:
			logger.warning("Bind as %s failed: %s", bind_dn, error)
			return False
		logger.info("Bound as %s", bind_dn)
		return True

	@staticmethod
	def _sasl_bind(connection, config):
		try:
			connection.sasl_interactive_bind_s('', ldap.sasl.gssapi())
		except ldap.LDAPError as error:
			logger.warning("SASL GSSAPI bind failed: %s", error)
			return False
		logger.info("Bound via SASL GSSAPI")
		return True
