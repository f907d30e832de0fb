"""
This module includes the associations between the mapped classes.

Two kinds of associations can be declared in the body of a mapped class:

	class Group(Base):
		dn_attribute = 'cn'
		prefix = 'ou=Groups'
		object_classes = ('top', 'posixGroup')
		members = HasMany('User', local_key='memberUid')

	class User(Base):
		dn_attribute = 'uid'
		prefix = 'ou=People'
		object_classes = ('top', 'account', 'posixAccount')
		groups = BelongsTo('Group', foreign_key='memberUid')

group.members returns the users listed in the memberUid-attribute of the
group, user.groups returns the groups whose memberUid-attribute lists the
uid of the user. Both return an AssociationCollection.
"""
from ldap.filter import escape_filter_chars

from .attributes import plain_values

CLASS_REGISTRY = {}
"""
Maps the names of all mapped classes (plain and module-qualified) to the
classes, in order to resolve associations declared with class names.
"""

def resolve_class(class_name):
	"""
	Returns the mapped class for the given class or class name.
	"""
	if not isinstance(class_name, str):
		return class_name
	try:
		return CLASS_REGISTRY[class_name]
	except KeyError:
		raise LookupError("No mapped class named '%s'" % class_name)


class AssociationCollection(list):
	"""
	A list of associated entries.
	"""

	def __init__(self, target_class, entries=()):
		super(AssociationCollection, self).__init__(entries)
		self.target_class = target_class

	def ids(self):
		"""
		Returns the values of the DN-attributes of the entries.
		"""
		return [ i.id for i in self ]

	def __contains__(self, item):
		"""
		Tests the membership by entry or by the value of the DN-attribute.
		"""
		if isinstance(item, str):
			return item.lower() in [
				str(i).lower() for i in self.ids() if i is not None
			]
		dn = getattr(item, 'dn', None)
		if dn is None:
			return False
		return dn.lower() in [ i.dn.lower() for i in self ]


class RelationField(object):
	"""
	This is a base-class for associations. The associated entries are those
	entries of the other class whose foreign_key-attribute holds one of the
	values of the local_key-attribute of the entry.

	class_name -- the other class of the association or its name.
	foreign_key -- the name of the attribute on the other class.
	local_key -- the name of the local attribute.
	"""

	def __init__(self, class_name, foreign_key=None, local_key=None):
		self.class_name  = class_name
		self.foreign_key = foreign_key
		self.local_key   = local_key

	@property
	def other_class(self):
		return resolve_class(self.class_name)

	def keys(self, owner):
		"""
		Returns the local and the foreign attribute name for the given entry.
		"""
		raise NotImplementedError("Not Implemented")

	def create_relation(self, relation_name, cls):
		"""
		Creates the association-property on the given class. The associated
		entries are cached in an instance variable until reload_cache is
		called.

		relation_name -- the name of the attribute in the class-dictionary
		cls -- the class which declared the association
		"""
		relation = self
		cache_name = "_%s" % relation_name
		def fetch_objects(self):
			"""
			this method fetches the associated entries and caches them in an
			instance variable.
			"""
			if cache_name not in self.has_many_list:
				self.has_many_list.append(cache_name)
			if getattr(self, cache_name, None) is None:
				setattr(self, cache_name, relation.fetch(self))
			return getattr(self, cache_name)
		setattr(cls, relation_name, property(fget=fetch_objects))

	def fetch(self, owner):
		"""
		Searches the associated entries of the given entry.
		"""
		local_key, foreign_key = self.keys(owner)
		other_class = self.other_class
		values = plain_values(owner.get_attribute(local_key, force_array=True))
		if not values:
			return AssociationCollection(other_class)
		ids = ''.join([
			"(%s=%s)" % (foreign_key, escape_filter_chars(self._text(i)))
			for i in values
		])
		if len(values) > 1:
			ids = "(|%s)" % ids
		return AssociationCollection(
			other_class,
			other_class.find(ids, objects=True)
		)

	@staticmethod
	def _text(value):
		if isinstance(value, bytes):
			return value.decode('utf-8')
		return str(value)


class BelongsTo(RelationField):
	"""
	The entry belongs to the entries of the other class which list it in
	their foreign_key-attribute. local_key defaults to the DN-attribute of
	the entry.
	"""

	def __init__(self, class_name, foreign_key, local_key=None):
		super(BelongsTo, self).__init__(class_name, foreign_key, local_key)

	def keys(self, owner):
		return self.local_key or owner.dn_attribute, self.foreign_key


class HasMany(RelationField):
	"""
	The entry lists the entries of the other class in its local_key-attribute.
	foreign_key defaults to the DN-attribute of the other class.
	"""

	def __init__(self, class_name, local_key, foreign_key=None):
		super(HasMany, self).__init__(class_name, foreign_key, local_key)

	def keys(self, owner):
		return self.local_key, self.foreign_key or self.other_class.dn_attribute
