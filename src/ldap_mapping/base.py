"""
This module includes the Base class from which the mapped classes must be
derived.
"""
import keyword
import logging

import ldap
import ldap.dn
import ldap.modlist
from ldap.filter import escape_filter_chars

from .associations import CLASS_REGISTRY, RelationField, resolve_class
from .attributes import BINARY_OPTION, decode_value, flatten_values, mangle, \
	normalize_values, parse_entry, plain_values, split_attribute_name
from .connection import Connection, NullConnection
from .errors import AttributeAssignmentError, AttributeEmpty, DeleteError, \
	EntryNotFound, ObjectClassError, WriteError
from .object_class import OBJECT_CLASS, ObjectClassMixin
from .signals import Sendable, send_event

logger = logging.getLogger(__name__)


class AttributeProperty(property):
	"""
	The accessor which is generated on a mapped class for an attribute of the
	schema.
	"""

	def __init__(self, attribute_name):
		def get_it(self):
			if self._resolve(attribute_name) is None:
				raise AttributeError(attribute_name)
			return self.get_attribute(attribute_name)
		def set_it(self, val):
			self.set_attribute(attribute_name, val)
		super(AttributeProperty, self).__init__(get_it, set_it)
		self.attribute_name = attribute_name


class LdapFetcher(Sendable):
	"""
	This class autogenerates the ldap fields. It dynamically searches for
	Relation-instances on the class and creates the appropriate relationship.
	Moreover this class is responsible for creation the mapped attributes on
	the class when specified.
	"""

	def __init__(cls, name, bases, dct):
		"""
		Dynamically searches for Relation-instances on the class and creates
		the appropriate relationship. Moreover it generates the properties for
		the links and registers the class for associations declared by name.
		"""
		# First of all we have to enable signals on the appropriate class
		super(LdapFetcher, cls).__init__(name, bases, dct)

		if not hasattr(cls, 'connection'):
			cls.connection = NullConnection()

		CLASS_REGISTRY[name] = cls
		CLASS_REGISTRY['%s.%s' % (cls.__module__, name)] = cls
		cls._attribute_methods = set()

		cls._create_has_many_list(name, bases, dct)
		relations = [ key for key in dct if isinstance(dct[key], RelationField) ]
		for relation_name in relations:
			dct[relation_name].create_relation(relation_name, cls)
		if isinstance(dct.get('attributes'), dict):
			cls._create_property_links()

	def _create_property_links(cls):
		"""
		Creates the property links for the given class
		"""
		for key in cls.attributes:
			cls._create_property(key, cls.attributes[key])

	def _create_property(cls, key, link):
		"""
		Creates the property link for the given key and link.

		key -- The name of the original ldap attribute.
		link -- The link-name of the property which should be created.
		"""
		def set_it(self, val):
			self.set_attribute(key, val)
		def get_it(self):
			return self.get_attribute(key)
		setattr(cls, link, property(get_it, set_it))

	def _create_has_many_list(cls, name, bases, dct):
		"""
		Creates the has_many_list property, which contains all names of cached
		properties.
		"""
		def get_has_many_list(self):
			if not hasattr(self, '_has_many_list'):
				self._has_many_list = []
			return self._has_many_list
		def set_has_many_list(self, names):
			self._has_many_list = names
		setattr(
			cls,
			'has_many_list',
			property(get_has_many_list, set_has_many_list)
		)

		def reload_cache(self):
			""" reloads the cached associations """
			for i in self.has_many_list:
				setattr(self, i, None)
		setattr(cls, 'reload_cache', reload_cache)

	def _define_attribute_methods(cls, names):
		"""
		Generates the accessors for the given attribute names. Names which
		are already used by the class are skipped, these attributes are still
		available through get_attribute and item access.
		"""
		for name in names:
			python_name = mangle(name)
			if python_name in cls._attribute_methods:
				continue
			if not python_name.isidentifier() or \
			   keyword.iskeyword(python_name) or hasattr(cls, python_name):
				logger.debug(
					"Not generating an accessor for %s on %s",
					name, cls.__name__
				)
				continue
			setattr(cls, python_name, AttributeProperty(name))
			cls._attribute_methods.add(python_name)


class Base(ObjectClassMixin, Connection, metaclass=LdapFetcher):
	"""
	This class represents the base of the mapping. Concrete classes must
	derive from this class and specify the following things:
		* dn_attribute: The attribute which forms the RDN of the entries
		* prefix: the DN of the entries relative to the configured base,
				  e.g. 'ou=People'
		* object_classes: the ldap-objectClasses of the class.
		* scope: the scope of the search-operations, e.g. ldap.SCOPE_SUBTREE
	Optionally:
		* attributes: a tuple of attribute names which are available when the
					  server has no schema, or a dictionary which maps
					  attribute names to names of linked properties
		* parent_class: the class of the entries above the entries of this
						class

	The accessors of the attributes are generated from the schema of the
	server:

		class User(Base):
			dn_attribute = 'uid'
			prefix = 'ou=People'
			object_classes = ('top', 'account', 'posixAccount')

		user = User('bob')
		user.cn = 'Bob'
		user.save()
	"""

	attributes = ()
	"""
	Declares attributes in addition to the ones of the schema. If this is a
	dictionary, its values are names of properties which are created as links
	of the real attributes. This was made in order to abstract from the
	ldap-schema.
	"""

	dn_attribute = 'cn'
	"""
	Specifies the DN-Attribute of the class.
	This should be overwritten.
	"""

	parent_class = None
	"""
	The class (or the name of the class) of the parent entries.
	"""

	def __init__(self, attrs=None, dn=None):
		"""
		Creates a new entry, or loads an existing one.

		attrs -- a dictionary of attribute values, or the value of the
				 DN-attribute of an entry which should be loaded. Entries
				 which don't exist are created on save().
		dn -- the DN of the entry if the attributes were read from the
			  directory.
		"""
		self._data = {}
		self._original = None
		self._dn = None
		self._attr_method = {}
		self._must = []
		self._may = []
		if isinstance(attrs, str):
			result = self._find_result_by_id(attrs)
			if result is not None:
				self._load(*result)
				return
			attrs = { self.dn_attribute: attrs }
		if dn:
			self._load(dn, attrs or {})
			return
		self._ensure_required_classes()
		self._refresh_attribute_map()
		for key, val in (attrs or {}).items():
			self._set_key(key, val)

	# ------ attribute access ------
	def get_attribute(self, name, force_array=False):
		"""
		Returns the value of the given attribute. A single value is returned
		as is, multiple values as a list. Attributes without values return
		an empty list, or None if they are single-valued.

		name -- the name of the attribute, options may be appended:
				'cn;lang-en'
		force_array -- always return a list
		"""
		attr_name, subtypes = split_attribute_name(name)
		canonical = self._resolve(attr_name)
		if canonical is None:
			if not self._accepts_any():
				raise AttributeAssignmentError(
					"The attribute '%s' is not allowed for %s" % (
						name, type(self).__name__
					)
				)
			canonical = attr_name
		values = self._data.get(canonical, [])
		for subtype in subtypes:
			values = [
				value for item in values
				if isinstance(item, dict) and subtype in item
				for value in item[subtype]
			]
		values = list(values)
		if force_array:
			return values
		if len(values) == 1:
			return values[0]
		if not values and self.schema().is_single_value(canonical):
			return None
		return values

	def set_attribute(self, name, value):
		"""
		Assigns the given value to the given attribute.

		name -- the name of the attribute, options may be appended:
				'cn;lang-en'
		value -- a single value, a list of values or a dictionary which maps
				 options to values. None removes all values.
		"""
		attr_name, subtypes = split_attribute_name(name)
		schema = self.schema()
		canonical = self._resolve(attr_name)
		if canonical is None:
			if not self._accepts_any():
				raise AttributeAssignmentError(
					"The attribute '%s' is not allowed for %s" % (
						name, type(self).__name__
					)
				)
			canonical = schema.canonical_name(attr_name)
			self._attr_method[canonical.lower()] = canonical
		try:
			values = normalize_values(
				value,
				schema.is_binary_required(canonical) and \
				BINARY_OPTION not in subtypes
			)
		except TypeError as error:
			raise AttributeAssignmentError(str(error)) from error
		if subtypes:
			current = self._data.get(canonical, [])
			if values:
				for subtype in reversed(subtypes):
					values = [ { subtype: values } ]
			values = [
				i for i in current
				if not (isinstance(i, dict) and subtypes[0] in i)
			] + values
		self._data[canonical] = values
		if canonical.lower() == OBJECT_CLASS.lower():
			self._ensure_required_classes()
			self._refresh_attribute_map()

	def __getattr__(self, name):
		if name.startswith('_'):
			raise AttributeError(name)
		canonical = self._resolve(name)
		if canonical is None:
			raise AttributeError("'%s' object has no attribute '%s'" % (
				type(self).__name__, name
			))
		return self.get_attribute(canonical)

	def __setattr__(self, name, value):
		if name.startswith('_') or hasattr(type(self), name) or \
		   self._resolve(name) is None:
			object.__setattr__(self, name, value)
			return
		self.set_attribute(name, value)

	def __getitem__(self, name):
		return self.get_attribute(name, force_array=True)

	def __setitem__(self, name, value):
		self.set_attribute(name, value)

	# ------ introspection ------
	@property
	def dn(self):
		"""
		The DN of the entry. For new entries it is constructed from the
		DN-attribute, existing entries keep their DN until they are saved.
		"""
		if self._dn is not None:
			return self._dn
		return self._construct_dn(self.id)

	@property
	def id(self):
		"""
		The value of the DN-attribute.
		"""
		values = plain_values(self._data.get(self._dn_key(), []))
		if not values:
			return None
		return decode_value(values[0])

	@property
	def must(self):
		""" The names of the attributes required by the objectClasses """
		return list(self._must)

	@property
	def may(self):
		""" The names of the attributes allowed by the objectClasses """
		return list(self._may)

	def attribute_names(self):
		"""
		Returns the names of all attributes which are allowed or set.
		"""
		names = []
		for name in self._must + self._may + list(self._data):
			if name.lower() not in [ i.lower() for i in names ]:
				names.append(name)
		return names

	def attribute_aliases(self, name):
		"""
		Returns all names of the given attribute, e.g. ['cn', 'commonName'].
		"""
		return self.schema().attribute_aliases(self._resolve(name) or name)

	def to_dict(self):
		"""
		Returns the attributes of the entry as a dictionary of lists.
		"""
		return dict(
			(name, list(values)) for name, values in self._data.items()
		)

	def parent(self):
		"""
		Returns the entry above this entry, if a parent_class is declared.
		"""
		if self.parent_class is None or self.dn is None:
			return None
		return resolve_class(self.parent_class).find_by_dn(
			self._parent_dn(self.dn)
		)

	def __repr__(self):
		return '<%s %s>' % (type(self).__name__, self.dn)

	# ------ finder methods ------
	@classmethod
	def find_by_id(cls, elem_id):
		"""Finds the item by id"""
		result = cls._find_result_by_id(elem_id)
		if result is None:
			return None
		return cls(result[1], result[0])

	@classmethod
	def find_by_dn(cls, dn):
		"""
		Finds the item by its DN. Returns None if there is no entry of the
		class with the DN.
		"""
		try:
			results = cls.execute(
				'search_s',
				dn,
				ldap.SCOPE_BASE,
				cls._filter()
			)
		except ldap.NO_SUCH_OBJECT:
			return None
		results = [ i for i in results if i[0] is not None ]
		if not results:
			return None
		return cls(results[0][1], results[0][0])

	@classmethod
	def find(cls, filter_expression, objects=None):
		"""Finds all which matches the given LDAP-filter"""
		return cls._objects_or_ids(
			[ cls(attrs, dn) for dn, attrs in cls._search(
				cls._filter(filter_expression)
			) ],
			objects
		)

	@classmethod
	def find_all(cls, value=None, attribute=None, filter_expression=None,
				 objects=None):
		"""
		Finds all items. The result can be restricted:

		value -- a value (which may contain '*') of the attribute
		attribute -- the attribute which is matched, defaults to the
					 DN-attribute
		filter_expression -- a raw LDAP-filter which is used instead of the
							 value
		objects -- if false, only the values of the DN-attributes are
				   returned. Defaults to the configured return_objects.
		"""
		return cls.find(
			cls._criteria(value, attribute, filter_expression),
			objects
		)

	@classmethod
	def find_first(cls, value=None, attribute=None, filter_expression=None,
				   objects=None):
		"""
		Finds the first item, see find_all. Returns None if nothing matches.
		"""
		results = cls.find_all(value, attribute, filter_expression, objects)
		if not results:
			return None
		return results[0]

	@classmethod
	def search(cls, base=None, filter_expression='(objectClass=*)',
			   scope=ldap.SCOPE_SUBTREE, attrs=None):
		"""
		Searches the directory independent of the mapping and returns the
		entries as dictionaries which carry the DN in the key 'dn'.

		base -- the base of the search, defaults to the base of the class
		filter_expression -- the LDAP-filter
		scope -- the scope of the search
		attrs -- the names of the attributes which should be returned
		"""
		if base is None:
			if cls is Base:
				base = cls.configuration()['base']
			else:
				base = cls.search_base()
		schema = cls.schema()
		entries = []
		for dn, entry_attrs in cls._search(filter_expression, base, scope,
										   attrs):
			entry = { 'dn': dn }
			for key, values in entry_attrs.items():
				name, subtypes = split_attribute_name(key)
				binary = schema.is_binary(name) or BINARY_OPTION in subtypes
				entry[key] = [ decode_value(i, binary) for i in values ]
			entries.append(entry)
		return entries

	# ---- creation methods -----
	def validate(self):
		"""
		Checks the entry against the schema. Raises AttributeEmpty if a
		required attribute has no value, ObjectClassError for unknown
		objectClasses and AttributeAssignmentError if a single-valued
		attribute has several values.
		"""
		if self.id is None:
			raise AttributeEmpty(self.dn_attribute)
		schema = self.schema()
		if not schema:
			return True
		for name in self.classes:
			if not schema.exists_object_class(name):
				raise ObjectClassError("Unknown objectClass '%s'" % name)
		for name in self._must:
			values = [
				i for i in plain_values(self._data.get(name, []))
				if i not in ('', b'')
			]
			if not values:
				raise AttributeEmpty(name)
		for name, values in self._data.items():
			if schema.is_single_value(name) and len(plain_values(values)) > 1:
				raise AttributeAssignmentError(
					"The attribute '%s' only takes a single value" % name
				)
		return True

	@send_event
	def save(self):
		""" Saves (creates or updates) the item """
		if self._original is None and self.id is not None:
			existing = self.find_by_id(self.id)
			if existing is not None:
				self._adopt(existing)
		self.validate()
		if self._original is None:
			self.create()
		else:
			self.update()
		return True

	@send_event
	def create(self):
		""" Creates the item in the directory """
		dn = self.dn
		if dn is None:
			raise AttributeEmpty(self.dn_attribute)
		entry = self.after_collect_attributes(self._collect_attrs())
		modlist = ldap.modlist.addModlist(entry)
		logger.debug("Adding %s: %r", dn, modlist)
		try:
			self.execute('add_s', dn, modlist)
		except ldap.LDAPError as error:
			raise WriteError("Could not create %s: %s" % (dn, error)) \
				from error
		self._dn = dn
		self._original = entry
		return True

	@send_event
	def update(self):
		""" Updates the item in the directory """
		if self._original is None:
			raise WriteError("%r has not been created yet" % self)
		# Modify the DN via modrdn!
		self._rename()
		entry = self.after_collect_attributes(self._collect_attrs())
		modlist = ldap.modlist.modifyModlist(self._original, entry)
		if modlist:
			logger.debug("Modifying %s: %r", self._dn, modlist)
			try:
				self.execute('modify_s', self._dn, modlist)
			except ldap.LDAPError as error:
				raise WriteError(
					"Could not modify %s: %s" % (self._dn, error)
				) from error
		self._original = entry
		return True

	@send_event
	def delete(self):
		"""
		Deletes the item from the directory
		"""
		dn = self.dn
		if dn is None:
			raise AttributeEmpty(self.dn_attribute)
		try:
			self.execute('delete_s', dn)
		except ldap.LDAPError as error:
			raise DeleteError("Could not delete %s: %s" % (dn, error)) \
				from error
		self._dn = None
		self._original = None
		return True

	@classmethod
	def delete_by_id(cls, elem_id):
		"""
		Deletes an entry by it's ID. A list of IDs deletes several entries.
		"""
		if not isinstance(elem_id, (list, tuple)):
			elem_id = [ elem_id ]
		for i in elem_id:
			dn = cls._construct_dn(i)
			try:
				cls.execute('delete_s', dn)
			except ldap.LDAPError as error:
				raise DeleteError("Could not delete %s: %s" % (dn, error)) \
					from error
		return True

	def reload(self):
		"""
		Reads the entry from the directory again and discards all unsaved
		changes.
		"""
		if self._dn is not None:
			entry = self.find_by_dn(self._dn)
		elif self.id is not None:
			entry = self.find_by_id(self.id)
		else:
			entry = None
		if entry is None:
			raise EntryNotFound("%s does not exist" % self.dn)
		self._dn = entry._dn
		self._data = entry._data
		self._original = entry._original
		self._refresh_attribute_map()
		self.reload_cache()
		return self

	def exists(self):
		"""
		Returns true if the entry exists in the directory.
		"""
		if self._dn is not None:
			return self.find_by_dn(self._dn) is not None
		if self.id is None:
			return False
		return self.find_by_id(self.id) is not None

	def after_collect_attributes(self, attrs):
		"""
		Overwrite this method in order to manipulate the attributes before
		sending them to the ldap-library.

		attrs -- a dictionary of attribute names and lists of bytes
		"""
		return attrs

	# ------ helper methods ------
	@classmethod
	def _classes_string(cls):
		"""Returns the object_classes as string"""
		return ''.join([ '(objectClass=%s)' % i for i in cls.object_classes ])

	@classmethod
	def _filter(cls, criteria=''):
		"""
		Returns the filter matching the entries of the class and the given
		criteria.
		"""
		return '(&%s%s)' % (cls._classes_string(), criteria or '')

	@classmethod
	def _criteria(cls, value, attribute, filter_expression):
		if filter_expression:
			if not filter_expression.startswith('('):
				filter_expression = '(%s)' % filter_expression
			return filter_expression
		if value is None:
			return ''
		return '(%s=%s)' % (
			attribute or cls.dn_attribute,
			cls._escape_pattern(value)
		)

	@staticmethod
	def _escape_pattern(value):
		"""
		Escapes the value for a filter but keeps the '*'-wildcards.
		"""
		return '*'.join([
			escape_filter_chars(i) for i in str(value).split('*')
		])

	@classmethod
	def _search(cls, filter_expression, base=None, scope=None, attrs=None):
		"""
		Searches the directory, a missing base gives no results.
		"""
		args = [
			cls.search_base() if base is None else base,
			cls.search_scope() if scope is None else scope,
			filter_expression
		]
		if attrs:
			args.append(list(attrs))
		try:
			results = cls.execute('search_s', *args)
		except ldap.NO_SUCH_OBJECT:
			return []
		# referrals come without a DN
		return [ i for i in results if i[0] is not None ]

	@classmethod
	def _find_result_by_id(cls, elem_id):
		results = cls._search(cls._filter('(%s=%s)' % (
			cls.dn_attribute,
			escape_filter_chars(str(elem_id))
		)))
		if len(results) == 0:
			return None
		return results[0]

	@classmethod
	def _objects_or_ids(cls, entries, objects):
		if objects is None:
			objects = cls.configuration()['return_objects']
		if objects:
			return entries
		return [ i.id for i in entries ]

	@classmethod
	def _construct_dn(cls, attr):
		"""
		Constructs the actual DN
		"""
		if attr is None:
			return None
		rdn = "%s=%s" % (cls.dn_attribute, ldap.dn.escape_dn_chars(str(attr)))
		base = cls.search_base()
		if not base:
			return rdn
		return "%s,%s" % (rdn, base)

	@staticmethod
	def _parent_dn(dn):
		return ldap.dn.dn2str(ldap.dn.str2dn(dn)[1:])

	def _dn_key(self):
		return self._resolve(self.dn_attribute) or self.dn_attribute

	def _resolve(self, name):
		"""
		Returns the canonical name of the given attribute name or alias if
		the attribute is available for the entry, otherwise None.
		"""
		return self.__dict__.get('_attr_method', {}).get(name.lower())

	def _accepts_any(self):
		"""
		Returns true if the entry takes attributes which are not declared,
		i.e. it is an extensibleObject or there is neither a schema nor a
		declaration.
		"""
		if 'extensibleobject' in [ i.lower() for i in self.classes ]:
			return True
		return not self.schema() and not self.attributes

	def _refresh_attribute_map(self):
		"""
		Computes the attributes which are available for the current
		objectClasses and generates their accessors.
		"""
		schema = self.schema()
		if schema:
			self._must, self._may = schema.object_class_attributes(
				self.classes
			)
		else:
			self._must, self._may = [ self.dn_attribute ], []
		names = self._must + self._may + list(self.attributes) + \
			[ self.dn_attribute, OBJECT_CLASS ] + list(self._data)
		attr_method = {}
		aliases = []
		for name in names:
			canonical = schema.canonical_name(name)
			for alias in schema.attribute_aliases(canonical):
				attr_method[alias.lower()] = canonical
				attr_method[mangle(alias).lower()] = canonical
				aliases.append(alias)
		self._attr_method = attr_method
		type(self)._define_attribute_methods(aliases)

	def _set_key(self, key, val):
		"""
		Assigns the given value to the given key

		key -- The attribute name (or the linked name) which should be set
		val -- The value of the attribute
		"""
		if isinstance(self.attributes, dict):
			for name, link in self.attributes.items():
				if link == key:
					key = name
		if self._resolve(split_attribute_name(key)[0]) is None and \
		   not self.schema() and not self._accepts_any():
			logger.debug(
				"Ignoring the undeclared attribute %s of %s",
				key, type(self).__name__
			)
			return
		self.set_attribute(key, val)

	def _load(self, dn, attrs):
		"""
		Initializes the entry with attributes read from the directory.
		"""
		self._dn = dn
		self._data = parse_entry(attrs, self.schema())
		self._refresh_attribute_map()
		self._original = self._collect_attrs()

	def _adopt(self, existing):
		"""
		Turns a new entry into the existing entry with the same DN-attribute
		value. The assigned attributes override the stored ones.
		"""
		data = dict(existing._data)
		data.update(self._data)
		classes = existing.classes
		for name in self.classes:
			if name.lower() not in [ i.lower() for i in classes ]:
				classes.append(name)
		data[OBJECT_CLASS] = classes
		self._data = data
		self._dn = existing._dn
		self._original = existing._original
		self._refresh_attribute_map()

	def _collect_attrs(self):
		"""
		Returns the attributes in the form expected by ldap.modlist:
		{ 'cn': [ b'val1' ], 'cn;lang-en': [ b'val2' ], ... }
		Attributes which can't be modified by users are skipped.
		"""
		schema = self.schema()
		entry = {}
		for name, values in self._data.items():
			if schema.is_read_only(name):
				continue
			flatten_values(name, values, entry)
		return entry

	def _rename(self):
		"""
		Renames the entry via modrdn if the DN-attribute has changed.
		"""
		new_id = self.id
		rdn = ldap.dn.str2dn(self._dn)[0][0]
		if new_id is None or (rdn[0].lower() == self.dn_attribute.lower() and
							  str(new_id).lower() == rdn[1].lower()):
			return
		new_rdn = '%s=%s' % (
			self.dn_attribute,
			ldap.dn.escape_dn_chars(str(new_id))
		)
		parent = self._parent_dn(self._dn)
		new_dn = parent and '%s,%s' % (new_rdn, parent) or new_rdn
		logger.debug("Renaming %s to %s", self._dn, new_dn)
		try:
			self.execute('modrdn_s', self._dn, new_rdn, True)
		except ldap.LDAPError as error:
			raise WriteError(
				"Could not rename %s: %s" % (self._dn, error)
			) from error
		# the server replaced the old RDN-value by the new one
		key = self._dn_key()
		old_value = rdn[1].encode('utf-8').lower()
		values = [
			i for i in self._original.get(key, [])
			if i.lower() != old_value
		]
		new_value = str(new_id).encode('utf-8')
		if new_value.lower() not in [ i.lower() for i in values ]:
			values.append(new_value)
		self._original[key] = values
		self._dn = new_dn
