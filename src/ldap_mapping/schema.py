"""
This module wraps the subschema of the directory server. The mapper uses it
to find the attributes which are allowed for the objectClasses of an entry,
the aliases of these attributes and how their values must be transferred.
"""
import logging

import ldap
import ldap.cidict
from ldap.schema.subentry import SubSchema
from ldap.schema.models import AttributeType, ObjectClass

logger = logging.getLogger(__name__)

SYNTAX_PREFIX = '1.3.6.1.4.1.1466.115.121.1.'

BINARY_SYNTAXES = frozenset(SYNTAX_PREFIX + i for i in (
	'4',   # Audio
	'5',   # Binary
	'23',  # Fax
	'28',  # JPEG
	'40',  # Octet String
))

BINARY_REQUIRED_SYNTAXES = frozenset(SYNTAX_PREFIX + i for i in (
	'8',   # Certificate
	'9',   # Certificate List
	'10',  # Certificate Pair
	'49',  # Supported Algorithm
))
"""
Values of these syntaxes must be transferred with the ;binary option.
"""

SCHEMA_ATTRIBUTES = ['attributeTypes', 'objectClasses']

class Schema(object):
	"""
	This class represents the schema of a directory server. An empty schema
	(without a subschema entry) knows no attributes and no objectClasses, in
	this case the mapper falls back to the declared attributes of a class.
	"""

	def __init__(self, entry=None):
		"""
		Constructor.

		entry -- the attributes of the subschema entry as returned by
				 search_s, or None for an empty schema.
		"""
		self.sub_schema = None
		if entry:
			self.sub_schema = SubSchema(entry)

	@classmethod
	def fetch(cls, connection):
		"""
		Reads the schema from the server behind the given connection. If the
		server does not publish a subschema entry an empty schema is returned.
		"""
		try:
			results = connection.search_s(
				'',
				ldap.SCOPE_BASE,
				'(objectClass=*)',
				['subschemaSubentry']
			)
			entry_dn = cls._subschema_dn(results)
			if entry_dn is None:
				logger.warning("The server publishes no subschema entry")
				return cls()
			results = connection.search_s(
				entry_dn,
				ldap.SCOPE_BASE,
				'(objectClass=subschema)',
				SCHEMA_ATTRIBUTES
			)
		except ldap.LDAPError as error:
			logger.warning("Could not fetch the schema: %s", error)
			return cls()
		if not results:
			return cls()
		logger.debug("Fetched the schema from %s", entry_dn)
		return cls(results[0][1])

	@staticmethod
	def _subschema_dn(results):
		if not results:
			return None
		values = ldap.cidict.cidict(results[0][1]).get('subschemaSubentry')
		if not values:
			return None
		value = values[0]
		if isinstance(value, bytes):
			value = value.decode('utf-8')
		return value

	def __bool__(self):
		return self.sub_schema is not None

	# ------ attribute types ------
	def attribute_type(self, name):
		"""
		Returns the attribute type with the given name or OID, or None.
		"""
		if self.sub_schema is None:
			return None
		return self.sub_schema.get_obj(AttributeType, name)

	def exists_attribute(self, name):
		"""Returns true if the attribute type is defined"""
		return self.attribute_type(name) is not None

	def attribute_aliases(self, name):
		"""
		Returns all names of the given attribute, e.g. ['cn', 'commonName'].
		Unknown attributes only have their own name.
		"""
		attribute = self.attribute_type(name)
		if attribute is None or not attribute.names:
			return [name]
		return list(attribute.names)

	def canonical_name(self, name):
		"""
		Returns the first name of the attribute as defined in the schema.
		"""
		return self.attribute_aliases(name)[0]

	def is_single_value(self, name):
		attribute = self.attribute_type(name)
		return bool(attribute is not None and attribute.single_value)

	def is_read_only(self, name):
		attribute = self.attribute_type(name)
		return bool(attribute is not None and attribute.no_user_mod)

	def syntax(self, name):
		"""
		Returns the syntax OID of the attribute, following the SUP-chain.
		"""
		if not self.exists_attribute(name):
			return None
		syntax = self.sub_schema.get_inheritedattr(
			AttributeType, name, 'syntax'
		)
		if syntax is None:
			return None
		return syntax.split('{')[0].strip()

	def is_binary(self, name):
		"""
		Returns true if the values of the attribute are raw bytes.
		"""
		syntax = self.syntax(name)
		return syntax in BINARY_SYNTAXES or syntax in BINARY_REQUIRED_SYNTAXES

	def is_binary_required(self, name):
		"""
		Returns true if the attribute must be written with the ;binary option.
		"""
		return self.syntax(name) in BINARY_REQUIRED_SYNTAXES

	# ------ object classes ------
	def object_class(self, name):
		if self.sub_schema is None:
			return None
		return self.sub_schema.get_obj(ObjectClass, name)

	def exists_object_class(self, name):
		return self.object_class(name) is not None

	def object_class_attributes(self, classes):
		"""
		Returns the MUST and the MAY attributes (as canonical names) of the
		given objectClasses including the attributes of their superior
		classes. Unknown classes are ignored.
		"""
		must, may = [], []
		pending = list(classes)
		seen = set()
		while pending:
			name = pending.pop(0)
			if name.lower() in seen:
				continue
			seen.add(name.lower())
			object_class = self.object_class(name)
			if object_class is None:
				continue
			for attr in object_class.must:
				self._append_unique(must, self.canonical_name(attr))
			for attr in object_class.may:
				self._append_unique(may, self.canonical_name(attr))
			sup = object_class.sup or ()
			if isinstance(sup, str):
				sup = (sup, )
			pending.extend(sup)
		must_names = set(i.lower() for i in must)
		may = [i for i in may if i.lower() not in must_names]
		return must, may

	@staticmethod
	def _append_unique(names, name):
		if name.lower() not in [i.lower() for i in names]:
			names.append(name)
