"""
This module includes the exceptions raised by the mapper. Errors of the
underlying ldap-library are chained to them.
"""

class LdapMappingError(Exception):
	"""
	Base class of all errors raised by the mapper.
	"""

class AttributeEmpty(LdapMappingError):
	"""
	Raised by validate() if an attribute which is required by the
	objectClasses of an entry has no value.
	"""
	def __init__(self, attribute):
		self.attribute = attribute
		super(AttributeEmpty, self).__init__(
			"The required attribute '%s' is empty" % attribute
		)

class AttributeAssignmentError(LdapMappingError):
	"""
	Raised if an attribute is not allowed for an entry or if it received
	values which can't be stored.
	"""

class ObjectClassError(LdapMappingError):
	"""
	Raised if an objectClass is not defined in the schema or if a required
	objectClass should be removed.
	"""

class WriteError(LdapMappingError):
	"""
	Raised if an entry could not be created, modified or renamed.
	"""

class DeleteError(LdapMappingError):
	"""
	Raised if an entry could not be deleted.
	"""

class AuthenticationError(LdapMappingError):
	"""
	Raised by establish_connection if no bind-method succeeded.
	"""

class LdapConnectionError(LdapMappingError):
	"""
	Raised if no connection to the server could be created.
	"""

class EntryNotFound(LdapMappingError):
	"""
	Raised by reload() if the entry does not exist in the directory anymore.
	"""
