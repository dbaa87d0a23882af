# expectation_maximization.py

from progress_events import EventDispatcher


class ExpectationMaximization:
    def __init__(self, e_step, m_step, event_dispatcher=None):
        """
        Compose an E-step and an M-step into variational EM epochs

        Parameters
        ----------
        e_step : AbstractEStep
            Produces variational parameters from a document and the model
            parameters.
        m_step : AbstractMStep
            Accumulates the document statistics and folds them into the model
            parameters.
        event_dispatcher : EventDispatcher, optional
            Sink shared by both steps for their progress events. A new one is
            created if not given. Listeners already attached to either step
            are moved onto it.
        """
        self.expectation = e_step
        self.maximization = m_step
        self.event_dispatcher = event_dispatcher or EventDispatcher()

        for step in (self.expectation, self.maximization):
            if step.event_dispatcher is not self.event_dispatcher:
                self.event_dispatcher.absorb(step.event_dispatcher)
            step.event_dispatcher = self.event_dispatcher

    def doc_e_step(self, doc, parameters):
        """Variational parameters of one document.

        The E-step only gets a read-only view of the model parameters; the
        M-step holds the only writable handle.
        """
        return self.expectation.doc_e_step(doc, parameters.frozen())

    def doc_m_step(self, doc, v_parameters, parameters):
        self.maximization.doc_m_step(doc, v_parameters, parameters)

    def m_step(self, parameters):
        self.maximization.m_step(parameters)

    def partial_fit(self, documents, parameters):
        """E-step and sufficient statistics accumulation for each document.

        With an online M-step the parameters are updated every minibatch;
        otherwise they only change on the next call to ``m_step``.
        """
        for doc in documents:
            self.doc_m_step(doc, self.doc_e_step(doc, parameters), parameters)

    def run_epoch(self, corpus, parameters):
        """One full EM pass: E-step and accumulation for every document of the
        corpus, then a single aggregation into ``parameters`` (in place)."""
        self.partial_fit(corpus, parameters)
        self.m_step(parameters)

        return parameters
