"""
This module includes the handling of the objectClass-attribute of an entry.
"""
from .errors import ObjectClassError

OBJECT_CLASS = 'objectClass'

class ObjectClassMixin(object):
	"""
	Mixin for the mapped classes which manages the objectClasses of an entry.
	The classes listed in object_classes are required: new entries always
	carry them and they can't be removed.
	"""

	object_classes = ('top', )
	"""
	Specifies the object-classes of the record type. This attribute should be
	overwritten by child-classes.
	"""

	@property
	def classes(self):
		"""
		Returns the current objectClasses of the entry.
		"""
		return [ i for i in self._data.get(OBJECT_CLASS, [])
				 if not isinstance(i, dict) ]

	def add_class(self, *names):
		"""
		Adds the given objectClasses. Their attributes become available
		immediately.
		"""
		schema = self.schema()
		classes = self.classes
		for name in names:
			if schema and not schema.exists_object_class(name):
				raise ObjectClassError("Unknown objectClass '%s'" % name)
			if name.lower() not in [ i.lower() for i in classes ]:
				classes.append(name)
		self._data[OBJECT_CLASS] = classes
		self._refresh_attribute_map()

	def remove_class(self, *names):
		"""
		Removes the given objectClasses. Required classes can't be removed.
		The values of attributes which are not allowed anymore are dropped.
		"""
		required = [ i.lower() for i in self.object_classes ]
		removed = [ i.lower() for i in names ]
		for name in names:
			if name.lower() in required:
				raise ObjectClassError(
					"The objectClass '%s' is required by %s" % (
						name, type(self).__name__
					)
				)
		allowed_before = self._allowed_names()
		self._data[OBJECT_CLASS] = [
			i for i in self.classes if i.lower() not in removed
		]
		self._refresh_attribute_map()
		allowed = self._allowed_names()
		for name in list(self._data):
			if name.lower() in allowed_before and name.lower() not in allowed:
				del self._data[name]
		self._refresh_attribute_map()

	def _allowed_names(self):
		return set(i.lower() for i in self._must + self._may)

	def _ensure_required_classes(self):
		classes = self.classes
		for name in self.object_classes:
			if name.lower() not in [ i.lower() for i in classes ]:
				classes.append(name)
		self._data[OBJECT_CLASS] = classes
