import numpy as np


class ProgressEvent:
    """A scalar likelihood value labelled by the kind of progress it reports."""

    def __init__(self, likelihood):
        self._likelihood = likelihood

    @property
    def id(self):
        return type(self).__name__

    def likelihood(self):
        return self._likelihood


class ExpectationProgressEvent(ProgressEvent):
    # Document ELBO, or NaN when the likelihood computation was skipped
    pass


class MaximizationProgressEvent(ProgressEvent):
    pass


class EventDispatcher:
    """Fire-and-forget dispatch of events to every registered listener."""

    def __init__(self):
        self._listeners = []

    def add_listener(self, listener):
        self._listeners.append(listener)

    def remove_listener(self, listener):
        self._listeners.remove(listener)

    def absorb(self, other):
        """Takes over the listeners of another dispatcher, skipping duplicates."""
        for listener in other._listeners:
            if listener not in self._listeners:
                self._listeners.append(listener)

    def dispatch(self, event):
        for listener in list(self._listeners):
            listener(event)


class ProgressRecorder:
    """Listener that stores the likelihoods it receives, split by event kind."""

    def __init__(self):
        self.expectation = []
        self.maximization = []

    def __call__(self, event):
        if isinstance(event, ExpectationProgressEvent):
            self.expectation.append(event.likelihood())
        elif isinstance(event, MaximizationProgressEvent):
            self.maximization.append(event.likelihood())

    def elbo(self):
        """Sum of the document ELBOs that were actually computed."""
        return float(np.nansum(self.expectation))

    def reset(self):
        self.expectation = []
        self.maximization = []
