"""
This module includes the event handling of the mapped classes. Every class
created by the Sendable metaclass owns an events-attribute on which callbacks
can be registered; the lifecycle methods of an entry (save, create, update,
delete) notify it through the send_event decorator.
"""
import functools
import logging

logger = logging.getLogger(__name__)

CATCHALL = '__all__'

class Sender(object):
	"""
	This class represents a sender which is able to send events to registered
	callbacks.
	"""

	@property
	def callbacks(self):
		"""
		Returns the callbacks per event. If the attribute is not existing it
		will be initialized.
		"""
		if not hasattr(self, '_callbacks'):
			self._callbacks = {}
		return self._callbacks

	@callbacks.setter
	def callbacks(self, callbacks):
		self._callbacks = callbacks

	@property
	def catchall_callbacks(self):
		"""
		Returns a list of callbacks which should be called everytime a new
		event occured.
		"""
		if not hasattr(self, '_catchall_callbacks'):
			self._catchall_callbacks = []
		return self._catchall_callbacks

	@catchall_callbacks.setter
	def catchall_callbacks(self, callbacks):
		self._catchall_callbacks = callbacks

	def register(self, event, callback):
		"""
		Registers a callback for a given event.

		event -- the event for which the callback should be registered, or
				 '__all__' for every event
		callback -- the callback itself, which is called with the event and
					the messages
		"""
		if event == CATCHALL:
			self.catchall_callbacks.append(callback)
			return
		self.callbacks.setdefault(event, []).append(callback)

	def notify(self, event, *messages):
		"""
		Notifies all callbacks, which are registered for the given event and
		sends them the given messages.
		"""
		for callback in list(self.catchall_callbacks):
			callback(event, *messages)
		for callback in list(self.callbacks.get(event, [])):
			callback(event, *messages)

	def unregister(self, event, callback):
		"""
		Unregisters the callback for the given event. Unknown callbacks are
		ignored.
		"""
		if event == CATCHALL:
			callbacks = self.catchall_callbacks
		else:
			callbacks = self.callbacks.get(event, [])
		if callback in callbacks:
			callbacks.remove(callback)

class SenderDelegator(object):
	"""
	This class calls the hook-methods of entries which have the same name as
	the occured events, e.g. before_save or after_delete.
	"""

	def __init__(self, sender):
		"""
		sender -- the sender-object which will emit the events
		"""
		sender.register(CATCHALL, self._event_received)

	def _event_received(self, event, *messages):
		"""
		The first message _must_ be the object whose hook should be called.
		"""
		obj = messages[0]
		hook = getattr(type(obj), event, None)
		if hook is None:
			return
		logger.debug("Calling %s on %r", event, obj)
		getattr(obj, event)(*messages[1:])

def send_event(func):
	"""
	This decorator emits the event before_<function_name> before the
	encapsulated method is called and after_<function_name> after it returned
	without an error. The encapsulated function _must_ be an instance-method of
	a class created by the Sendable metaclass.
	"""
	before_name = 'before_%s' % func.__name__
	after_name  = 'after_%s' % func.__name__

	@functools.wraps(func)
	def new_fun(self, *args, **kwds):
		self.events.notify(before_name, self)
		result = func(self, *args, **kwds)
		self.events.notify(after_name, self)
		return result
	return new_fun

class Sendable(type):
	"""
	This metaclass adds an events-attribute and a SenderDelegator to every
	class. The notified events _must_ carry the sending object as their first
	message:

		# in base
		def save(self):
			self.events.notify('before_save', self)

		# in child:
		def before_save(self):
			self.password_changed = True
	"""

	def __init__(cls, name, bases, dct):
		super(Sendable, cls).__init__(name, bases, dct)
		cls.events = Sender()
		cls._delegator = SenderDelegator(cls.events)
