import unittest
from unittest import mock

import ldap

from ldap_mapping import AuthenticationError, DEFAULT_CONFIG, \
	LdapConnectionError, NullConnection
from ldap_mapping.configuration import Configuration, merge_config
from ldap_mapping.connection import Connection
from ldap_mapping.ldap_stubber import CORE_SCHEMA, LdapStubber

class Directory(Connection):
	connection = NullConnection()

class Subdirectory(Directory):
	pass

class People(Configuration):
	config = { 'base': 'dc=example,dc=com' }
	prefix = 'ou=People'

class Staff(Configuration):
	config = { 'base': 'dc=example,dc=com' }

class Everything(Configuration):
	config = { 'base': 'dc=example,dc=com', 'ldap_scope': ldap.SCOPE_SUBTREE }
	prefix = ''

class Absolute(Configuration):
	config = { 'base': 'dc=example,dc=com' }
	prefix = 'ou=Hosts,dc=example,dc=com'
	scope = ldap.SCOPE_BASE


class MergingTheConfiguration(unittest.TestCase):
	def test_should_start_from_the_defaults(self):
		self.assertEqual(merge_config(), DEFAULT_CONFIG)
		self.assertIsNot(merge_config(), DEFAULT_CONFIG)

	def test_should_prefer_the_options_over_the_config(self):
		config = merge_config({ 'host': 'a', 'port': 1 }, host='b')
		self.assertEqual(config['host'], 'b')
		self.assertEqual(config['port'], 1)
		self.assertEqual(config['retries'], DEFAULT_CONFIG['retries'])

	def test_should_reject_unknown_methods(self):
		self.assertRaises(ValueError, merge_config, method='carrier-pigeon')


class ResolvingTheSearchBase(unittest.TestCase):
	def test_should_append_the_base_to_the_prefix(self):
		self.assertEqual(People.search_base(), 'ou=People,dc=example,dc=com')

	def test_should_default_to_the_class_name(self):
		self.assertEqual(Staff.search_base(), 'ou=Staff,dc=example,dc=com')

	def test_should_use_the_base_for_an_empty_prefix(self):
		self.assertEqual(Everything.search_base(), 'dc=example,dc=com')

	def test_should_not_append_the_base_twice(self):
		self.assertEqual(Absolute.search_base(), 'ou=Hosts,dc=example,dc=com')

	def test_should_use_the_configured_scope(self):
		self.assertEqual(People.search_scope(), ldap.SCOPE_ONELEVEL)
		self.assertEqual(Everything.search_scope(), ldap.SCOPE_SUBTREE)
		self.assertEqual(Absolute.search_scope(), ldap.SCOPE_BASE)


class ConnectionTestCase(unittest.TestCase):
	def setUp(self):
		self.ldap_object = mock.Mock()
		patcher = mock.patch('ldap.initialize', return_value=self.ldap_object)
		self.initialize = patcher.start()
		self.addCleanup(patcher.stop)
		patcher = mock.patch('time.sleep')
		self.sleep = patcher.start()
		self.addCleanup(patcher.stop)
		Directory.connection = NullConnection()
		Directory.config = None


class EstablishingAConnection(ConnectionTestCase):
	def test_should_initialize_and_bind(self):
		connection = Directory.establish_connection(
			bind_dn='cn=admin,dc=example,dc=com',
			password='secret',
		)
		self.assertIs(connection, self.ldap_object)
		self.assertIs(Directory.connection, self.ldap_object)
		self.initialize.assert_called_once_with('ldap://127.0.0.1:389')
		self.assertEqual(self.ldap_object.protocol_version, ldap.VERSION3)
		self.ldap_object.set_option.assert_any_call(ldap.OPT_REFERRALS, 0)
		self.ldap_object.simple_bind_s.assert_called_once_with(
			'cn=admin,dc=example,dc=com', 'secret'
		)

	def test_should_prefer_the_uri(self):
		Directory.establish_connection({ 'uri': 'ldapi:///' })
		self.initialize.assert_called_once_with('ldapi:///')

	def test_should_build_an_ldaps_uri_for_ssl(self):
		Directory.establish_connection(method='ssl', host='ldap', port=636)
		self.initialize.assert_called_once_with('ldaps://ldap:636')

	def test_should_start_tls(self):
		Directory.establish_connection(method='tls')
		self.ldap_object.start_tls_s.assert_called_once_with()

	def test_should_set_the_timeout(self):
		Directory.establish_connection(timeout=5)
		self.ldap_object.set_option.assert_any_call(
			ldap.OPT_NETWORK_TIMEOUT, 5
		)
		self.assertEqual(self.ldap_object.timeout, 5)

	def test_should_use_the_bind_format(self):
		Directory.establish_connection(
			bind_format='uid=%s,ou=People,dc=example,dc=com',
			user='bob',
			password='pw',
		)
		self.ldap_object.simple_bind_s.assert_called_once_with(
			'uid=bob,ou=People,dc=example,dc=com', 'pw'
		)

	def test_should_bind_anonymously_without_credentials(self):
		Directory.establish_connection(user=None)
		self.ldap_object.simple_bind_s.assert_called_once_with('', '')

	def test_should_fall_back_to_an_anonymous_bind(self):
		def bind(who, password):
			if who:
				raise ldap.INVALID_CREDENTIALS({'desc': 'Invalid credentials'})
		self.ldap_object.simple_bind_s.side_effect = bind
		Directory.establish_connection(bind_dn='cn=admin', password='wrong')
		self.ldap_object.simple_bind_s.assert_called_with('', '')

	def test_should_raise_if_no_bind_is_possible(self):
		self.ldap_object.simple_bind_s.side_effect = \
			ldap.INVALID_CREDENTIALS({'desc': 'Invalid credentials'})
		self.assertRaises(
			AuthenticationError,
			Directory.establish_connection,
			bind_dn='cn=admin',
			password='wrong',
			allow_anonymous=False,
		)

	def test_should_fall_back_if_the_server_refuses_the_bind(self):
		def bind(who, password):
			if who:
				raise ldap.UNWILLING_TO_PERFORM({'desc': 'Unwilling to perform'})
		self.ldap_object.simple_bind_s.side_effect = bind
		Directory.establish_connection(bind_dn='cn=admin', password='')
		self.ldap_object.simple_bind_s.assert_called_with('', '')

	def test_should_raise_an_authentication_error_for_refused_binds(self):
		error = ldap.UNWILLING_TO_PERFORM({'desc': 'Unwilling to perform'})
		self.ldap_object.simple_bind_s.side_effect = error
		self.assertRaises(
			AuthenticationError,
			Directory.establish_connection,
			bind_dn='cn=admin',
			password='',
			allow_anonymous=False,
		)

	def test_should_try_sasl_first(self):
		Directory.establish_connection(try_sasl=True, bind_dn='cn=admin')
		self.assertTrue(self.ldap_object.sasl_interactive_bind_s.called)
		self.assertFalse(self.ldap_object.simple_bind_s.called)


class AskingForThePassword(ConnectionTestCase):
	def setUp(self):
		super().setUp()
		self.password_block = mock.Mock(return_value='from-block')

	def test_should_store_the_password(self):
		Directory.establish_connection(
			bind_dn='cn=admin', password_block=self.password_block
		)
		Directory.reconnect()
		self.password_block.assert_called_once_with()
		self.assertEqual(Directory.config['password'], 'from-block')
		self.ldap_object.simple_bind_s.assert_called_with(
			'cn=admin', 'from-block'
		)

	def test_should_ask_again_if_the_password_is_not_stored(self):
		Directory.establish_connection(
			bind_dn='cn=admin',
			password_block=self.password_block,
			store_password=False,
		)
		Directory.reconnect()
		self.assertEqual(self.password_block.call_count, 2)
		self.assertEqual(Directory.config['password'], None)


class RetryingTheConnection(ConnectionTestCase):
	def test_should_retry_if_the_server_is_down(self):
		self.ldap_object.simple_bind_s.side_effect = [
			ldap.SERVER_DOWN({'desc': "Can't contact LDAP server"}),
			None,
		]
		Directory.establish_connection(retry_wait=7)
		self.assertEqual(self.initialize.call_count, 2)
		self.sleep.assert_called_once_with(7)

	def test_should_give_up_after_the_retries(self):
		self.ldap_object.simple_bind_s.side_effect = \
			ldap.SERVER_DOWN({'desc': "Can't contact LDAP server"})
		self.assertRaises(
			LdapConnectionError,
			Directory.establish_connection,
			retries=2,
		)
		self.assertEqual(self.sleep.call_count, 2)
		self.assertEqual(self.initialize.call_count, 3)

	def test_should_reconnect_and_repeat_the_operation(self):
		Directory.establish_connection()
		self.ldap_object.search_s.side_effect = [
			ldap.SERVER_DOWN({'desc': "Can't contact LDAP server"}),
			[ ('cn=x', {}) ],
		]
		result = Directory.execute('search_s', 'cn=x', ldap.SCOPE_BASE)
		self.assertEqual(result, [ ('cn=x', {}) ])
		self.assertEqual(self.initialize.call_count, 2)
		self.sleep.assert_called_once_with(DEFAULT_CONFIG['retry_wait'])

	def test_should_not_retry_timeouts_if_disabled(self):
		Directory.establish_connection(retry_on_timeout=False)
		self.ldap_object.search_s.side_effect = ldap.TIMEOUT({'desc': 'Timed out'})
		self.assertRaises(
			ldap.TIMEOUT, Directory.execute, 'search_s', 'cn=x', ldap.SCOPE_BASE
		)
		self.assertFalse(self.sleep.called)

	def test_should_retry_forever_without_a_limit(self):
		down = ldap.SERVER_DOWN({'desc': "Can't contact LDAP server"})
		self.ldap_object.simple_bind_s.side_effect = [ down ] * 5 + [ None ]
		Directory.establish_connection(retries=-1)
		self.assertEqual(self.sleep.call_count, 5)
		self.assertIs(Directory.connection, self.ldap_object)


class ClosingAndReconnecting(ConnectionTestCase):
	def test_should_unbind_on_close(self):
		Directory.establish_connection()
		Directory.close()
		self.ldap_object.unbind_s.assert_called_once_with()
		self.assertIsInstance(Directory.connection, NullConnection)

	def test_should_replace_the_connection_of_the_owning_class(self):
		Directory.establish_connection()
		other = mock.Mock()
		self.initialize.return_value = other
		Subdirectory.reconnect()
		self.assertIs(Directory.connection, other)
		self.assertNotIn('connection', vars(Subdirectory))

	def test_should_close_the_connection_of_the_owning_class(self):
		Directory.establish_connection()
		Subdirectory.close()
		self.ldap_object.unbind_s.assert_called_once_with()
		self.assertIsInstance(Directory.connection, NullConnection)
		self.assertNotIn('connection', vars(Subdirectory))


class CachingTheSchema(unittest.TestCase):
	def test_should_fetch_the_schema_once_per_connection(self):
		Directory.connection = LdapStubber(schema=CORE_SCHEMA)
		schema = Directory.schema()
		self.assertTrue(schema.exists_object_class('inetOrgPerson'))
		self.assertIs(Directory.schema(), schema)
		Directory.connection = LdapStubber()
		self.assertFalse(Directory.schema())
