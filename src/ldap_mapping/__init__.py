"""
= Introduction =
ldap_mapping is an ObjectRelationalMapper for LDAP, which is inspired from
the ruby ActiveLdap library.

To use it you must derive from the Base-class and specify several
class-attributes on this class. Then you must connect to your ldap-server via
the establish_connection-method. The accessors of the attributes are
generated from the schema of the server.

== Basic Usage ==
To specify a User-class you must do the following:
	from ldap_mapping import Base
	import ldap
	class User(Base):
		dn_attribute = 'uid'
		prefix = 'ou=People'
		scope = ldap.SCOPE_ONELEVEL
		object_classes = ('top', 'person', 'posixAccount')

	Base.establish_connection({
		'host': 'ldap.example.com',
		'base': 'dc=example,dc=com',
		'bind_dn': 'cn=admin,dc=example,dc=com',
		'password_block': lambda: getpass.getpass(),
		#...
	})

	User.find_all()		# returns all users
	User.find_all('b*', objects=False)	# returns the uids starting with b
	u = User.find_by_id('some_user') # finds the user with the ID 'some_user'
	u.telephoneNumber = '44444'
	u.save()			# updates the user

	u = User({
		'uid': 'someid',
		'cn': 'somecn',
		'sn': 'somesn',
		'uidNumber': 1000,
		'gidNumber': 1000,
		'homeDirectory': '/home/someid',
	})
	u.save()			# Creates the user

	u.delete()			# Deletes the user

	User.find('(telephoneNumber=3333)')	# Returns all users with the
										# phone number 3333

Values with options are held as dictionaries:
	u.cn = [ 'Will', { 'lang-en': [ 'William' ] } ]
	u.get_attribute('cn;lang-en')		# 'William'

== Associations ==
	from ldap_mapping import Base, BelongsTo, HasMany

	class Group(Base):
		dn_attribute = 'cn'
		prefix = 'ou=Groups'
		object_classes = ('top', 'posixGroup')
		members = HasMany('User', local_key='memberUid')

	class User(Base):
		#...
		groups = BelongsTo('Group', foreign_key='memberUid')

	user = User.find_by_id('some_user')
	user.groups			# Returns all groups listing the user in memberUid
	group = Group.find_by_id('some_group')
	group.members		# Returns all users listed in memberUid
	group.members.ids()	# Returns their uids
	group.reload_cache()	# Forgets the fetched associations

== Hooks ==
The methods save, create, update and delete emit events. A mapped class can
hook into them by defining before_<event> and after_<event> methods:

	class User(Base):
		#...
		def before_save(self):
			self.displayName = '%s %s' % (self.givenName, self.sn)
"""
from .associations import AssociationCollection, BelongsTo, HasMany
from .base import Base
from .configuration import DEFAULT_CONFIG
from .connection import NullConnection
from .errors import AttributeAssignmentError, AttributeEmpty, \
	AuthenticationError, DeleteError, EntryNotFound, LdapConnectionError, \
	LdapMappingError, ObjectClassError, WriteError

VERSION = '0.9.0'
